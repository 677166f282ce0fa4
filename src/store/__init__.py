"""Storage and versioning layer.

This package persists bundle versions on the local filesystem.
It powers storing, loading, listing, and removing bundles for the SDK.
"""
