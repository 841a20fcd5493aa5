def tag_override(result, generator, request, public):
    """Normalize tags across the schema by URL prefix."""
    patterns = [
        (lambda p: p.startswith("/api/v1/auth/"), "Authentication"),
        (lambda p: p.startswith("/api/v1/admin/"), "Admin"),
        (lambda p: p.startswith("/api/v1/sessions/"), "Sessions"),
        (lambda p: p.startswith("/api/v1/questions/"), "Questions"),
        (lambda p: p.startswith("/api/v1/responses/"), "Responses"),
        (lambda p: p.startswith("/api/v1/anonymous/"), "Audience"),
        (lambda p: p == "/api/v1/schema/", "Meta"),
    ]
    for path, operations in result.get("paths", {}).items():
        tag = None
        for pred, name in patterns:
            if pred(path):
                tag = name
                break
        if tag is None:
            continue
        for op in operations.values():
            op["tags"] = [tag]
    return result
