"""Fragments app: typed content blobs stored per owner.

Entry point: ``apps.create_fragment_service()``.
"""
