"""
Tests for BlockProcessor: decoding, watch-list classification, totals, and
idempotent reprocessing of a block.
"""

from __future__ import annotations

import pytest

from netflow_indexer.core.exceptions import ConnectivityError, PersistenceError
from netflow_indexer.database import NetflowTotals
from netflow_indexer.ingestion.decoder import TRANSFER_TOPIC
from tests.fakes import OTHER, WATCHED, WATCHED_2, make_log, pad_topic

OTHER_2 = "0x" + "e" * 40


def test_single_inbound_transfer(chain, ledger, processor):
    """Block 100: OTHER -> WATCHED of 1000 becomes one row and inflow 1000."""
    chain.timestamps[100] = 1_700_000_000
    chain.add_log(make_log(100, sender=OTHER, recipient=WATCHED, amount=1000))

    result = processor.process_block(100)

    assert result.inserted == 1
    assert result.totals_updated is True
    assert result.totals == NetflowTotals(inflow="1000", outflow="0")
    [row] = ledger.get_transfers()
    assert (row.from_address, row.to_address, row.amount) == (OTHER, WATCHED, "1000")
    assert row.timestamp == 1_700_000_000
    assert ledger.get_totals() == NetflowTotals("1000", "0")


def test_outbound_transfer_counts_as_outflow(chain, ledger, processor):
    chain.add_log(make_log(5, sender=WATCHED, recipient=OTHER, amount=300))
    result = processor.process_block(5)
    assert result.outflow_delta == 300
    assert ledger.get_totals() == NetflowTotals("0", "300")


def test_transfer_between_two_watched_addresses(chain, ledger, processor):
    """Watched -> watched of X: inflow += X, outflow += X, net unchanged."""
    chain.add_log(make_log(1, sender=OTHER, recipient=WATCHED, amount=500, log_index=0))
    processor.process_block(1)
    net_before = ledger.get_totals().net

    chain.add_log(make_log(2, sender=WATCHED, recipient=WATCHED_2, amount=200))
    result = processor.process_block(2)

    assert result.inflow_delta == 200
    assert result.outflow_delta == 200
    totals = ledger.get_totals()
    assert totals == NetflowTotals("700", "200")
    assert totals.net == "500"
    assert net_before == "500"


def test_watch_list_is_normalized(chain, ledger, processor):
    """WATCHED_2 was configured upper-case with whitespace."""
    assert WATCHED_2 in processor.watch_addresses
    chain.add_log(make_log(3, sender=OTHER, recipient=WATCHED_2, amount=9))
    processor.process_block(3)
    assert ledger.get_totals().inflow == "9"


def test_unrelated_transfers_recorded_without_totals_update(chain, ledger, processor):
    chain.add_log(make_log(4, sender=OTHER, recipient=OTHER_2, amount=77))
    result = processor.process_block(4)
    assert result.inserted == 1
    assert result.totals_updated is False
    assert ledger.count_transfers() == 1
    assert ledger.get_totals() == NetflowTotals("0", "0")


def test_malformed_log_skipped_valid_log_recorded(chain, ledger, processor):
    """A 2-topic log next to a valid 3-topic log: malformed skipped, block succeeds."""
    chain.add_log(make_log(100, topics=[TRANSFER_TOPIC, pad_topic(OTHER)], log_index=0))
    chain.add_log(make_log(100, sender=OTHER, recipient=WATCHED, amount=1000, log_index=1))

    result = processor.process_block(100)

    assert result.log_count == 2
    assert result.skipped == 1
    assert result.inserted == 1
    assert ledger.count_transfers() == 1
    assert ledger.get_totals().inflow == "1000"


def test_unparseable_topic_and_data_are_skipped(chain, ledger, processor):
    chain.add_log(make_log(6, topics=[TRANSFER_TOPIC, "0xnothex", pad_topic(WATCHED)], log_index=0))
    chain.add_log(make_log(6, data="0xzz", log_index=1))
    chain.add_log(make_log(6, amount=5, log_index=2))
    result = processor.process_block(6)
    assert result.skipped == 2
    assert result.inserted == 1
    assert ledger.get_totals().inflow == "5"


def test_empty_block_is_a_no_op(chain, ledger, processor):
    result = processor.process_block(42)
    assert result.log_count == 0
    assert result.inserted == 0
    assert result.totals == NetflowTotals("0", "0")
    assert ledger.count_transfers() == 0


def test_missing_block_timestamp_is_zero(chain, ledger, processor):
    chain.add_log(make_log(8))
    processor.process_block(8)
    [row] = ledger.get_transfers()
    assert row.timestamp == 0


def test_reprocessing_block_is_idempotent(chain, ledger, processor):
    chain.add_log(make_log(10, sender=OTHER, recipient=WATCHED, amount=1000, log_index=0))
    chain.add_log(make_log(10, sender=WATCHED, recipient=OTHER, amount=400, log_index=1))
    processor.process_block(10)
    totals_before = ledger.get_totals()

    again = processor.process_block(10)

    assert again.inserted == 0
    assert again.duplicates == 2
    assert again.totals_updated is False
    assert ledger.get_totals() == totals_before
    assert ledger.count_transfers() == 2


def test_multiple_transfers_in_one_transaction_all_counted(chain, ledger, processor):
    shared_tx = "0x" + "ab" * 32
    chain.add_log(make_log(11, tx=shared_tx, amount=100, log_index=0))
    chain.add_log(make_log(11, tx=shared_tx, amount=250, log_index=1))
    result = processor.process_block(11)
    assert result.inserted == 2
    assert ledger.get_totals().inflow == "350"


def test_net_floored_when_outflow_exceeds_inflow(chain, ledger, processor):
    chain.add_log(make_log(1, sender=OTHER, recipient=WATCHED, amount=100, log_index=0))
    chain.add_log(make_log(1, sender=WATCHED, recipient=OTHER, amount=900, log_index=1))
    result = processor.process_block(1)
    assert result.totals == NetflowTotals("100", "900")
    assert result.totals.net == "0"


def test_net_matches_exact_sums_over_sequence(chain, ledger, processor):
    amounts = [(OTHER, WATCHED, 10**30), (WATCHED, OTHER, 3), (OTHER, WATCHED_2, 7), (WATCHED_2, WATCHED, 11)]
    expected_in = expected_out = 0
    for i, (sender, recipient, amount) in enumerate(amounts):
        chain.add_log(make_log(20 + i, sender=sender, recipient=recipient, amount=amount))
        processor.process_block(20 + i)
        if recipient in (WATCHED, WATCHED_2):
            expected_in += amount
        if sender in (WATCHED, WATCHED_2):
            expected_out += amount
    totals = ledger.get_totals()
    assert totals.inflow == str(expected_in)
    assert totals.outflow == str(expected_out)
    assert totals.net == str(max(expected_in - expected_out, 0))


def test_connectivity_error_writes_nothing(chain, ledger, processor):
    chain.add_log(make_log(12))
    chain.failing_blocks.add(12)
    with pytest.raises(ConnectivityError):
        processor.process_block(12)
    assert ledger.count_transfers() == 0


def test_persistence_error_rolls_back_whole_block(chain, ledger, processor, monkeypatch):
    chain.add_log(make_log(13, amount=1000))
    from netflow_indexer.database.database import SQLiteTransaction

    def failing_write_totals(self, inflow, outflow):
        raise PersistenceError("disk full")

    monkeypatch.setattr(SQLiteTransaction, "write_totals", failing_write_totals)
    with pytest.raises(PersistenceError):
        processor.process_block(13)
    assert ledger.count_transfers() == 0
    assert ledger.get_totals() == NetflowTotals("0", "0")


def test_constructor_requires_token():
    from netflow_indexer.ingestion.processor import BlockProcessor

    with pytest.raises(ValueError):
        BlockProcessor(None, None, token_address=" ", watch_addresses=[], transfer_topic=TRANSFER_TOPIC)
