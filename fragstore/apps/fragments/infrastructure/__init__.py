"""Infrastructure layer for fragments app.

This package contains integrations with external systems:
- Content-Type parsing and the closed type/extension tables
- Storage contracts and the memory and AWS (DynamoDB + S3) backends
- The versioned metadata record format

Keep infrastructure concerns separate from business logic.
"""
