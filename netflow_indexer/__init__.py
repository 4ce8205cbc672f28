"""
Netflow Indexer: token transfer ingestion and watch-list netflow tracking.

Polls an EVM chain for Transfer events of a single token contract, records
every transfer in a durable ledger, and keeps running inflow/outflow totals
for a watch-list of addresses. Modular layout: chain client, ingestion
pipeline, ledger database, read cache, and API server.
"""

__version__ = "0.1.0"
