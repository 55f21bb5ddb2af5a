# Path: core/__init__.py
# Purpose: Package initializer for core application layer.
# Layer: core.
# Details: Aggregates subpackages for hashing, tag queries, the catalog, search, tasks, indexing, and models.
