=== LANGUAGE: {language} ===

=== FILE CONTENT WITH LINE NUMBERS ===
```{language}
{add_line_numbers(file_content)}
```

=== ISSUES TO FIX (fix ALL of them) ===
{serialize_issues(issues)}

Respond with STRICT JSON only.
"""
