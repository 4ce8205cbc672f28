"""
API server package: read-only HTTP interface.

Serves the in-memory netflow snapshot and a liveness probe. The ingestion
thread is the only writer of the snapshot.
"""
