"""
Structured logging for the netflow indexer.

JSON logs with timestamp, event_type, and block/transfer context.
Use get_logger() in all modules for aggregation-friendly output.
"""

from netflow_indexer.indexer_logging.logger import bind_block, get_logger

__all__ = ["bind_block", "get_logger"]
