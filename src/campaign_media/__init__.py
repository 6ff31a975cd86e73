"""Campaign media ingestion service.

The package stages uploaded press attachments and gallery media, forwards them
to the remote asset store and persists media records while guaranteeing that
neither the staging area nor the remote store keeps orphaned files.
"""

__all__: list[str] = []
