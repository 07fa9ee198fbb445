"""
App layer: HTTP server (FastAPI).

Role:
- Course record in, archive out
- Administrator template uploads
- No document logic here (delegated to packaging/templates)
"""
