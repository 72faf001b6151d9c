"""
FastAPI backend for Bebek AI: HTTP routes, persistence clients and the
video job worker.
"""
