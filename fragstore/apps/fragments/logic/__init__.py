"""Business logic layer for fragments app.

This package contains:
- Fragment create, read, update, delete and list
- Conversion of fragment content between types

Storage is injected, never looked up globally.
"""
