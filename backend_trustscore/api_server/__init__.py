"""
HTTP query surface for the trust score engine (FastAPI).
"""
