"""Business logic layer for assets app.

This package contains all business logic for the asset library:
- Folder tree maintenance (create, move, delete guards, tree building)
- Tag bookkeeping (unique names, usage counts, cascading removal)
- Asset metadata and reference checks against folders and tags

All business logic should be implemented here, separate from
models (data layer) and infrastructure (external systems).
"""
