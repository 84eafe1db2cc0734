from datetime import datetime, timezone

import pytest

from promoprobe.models.code_models import CodeStatus
from promoprobe.repositories.code_repository import BatchNotFoundError


def test_add_codes_trims_and_defaults_to_pending(repository) -> None:
    batch = repository.create_batch("launch")

    records = repository.add_codes(batch.id, ["  AAA ", "", "BBB", "   "])

    assert [r.code for r in records] == ["AAA", "BBB"]
    assert all(r.status == CodeStatus.PENDING for r in records)
    assert all(r.batch_id == batch.id for r in records)


def test_add_codes_unknown_batch(repository) -> None:
    with pytest.raises(BatchNotFoundError):
        repository.add_codes(9999, ["AAA"])


def test_fetch_pending_in_insertion_order(repository) -> None:
    batch = repository.create_batch()
    records = repository.add_codes(batch.id, ["C1", "C2", "C3"])
    repository.update_code_status(records[1].id, CodeStatus.VALID, "ok")

    pending = repository.fetch_pending_codes(batch.id)

    assert [p.code for p in pending] == ["C1", "C3"]


def test_update_code_status_overwrites_fields(repository) -> None:
    batch = repository.create_batch()
    (record,) = repository.add_codes(batch.id, ["X"])
    when = datetime(2026, 1, 2, 3, 4, 5, tzinfo=timezone.utc)

    assert repository.update_code_status(record.id, CodeStatus.INVALID, "expired", when)
    # Idempotent
    assert repository.update_code_status(record.id, CodeStatus.INVALID, "expired", when)

    stored = repository.get_code(record.id)
    assert stored.status == CodeStatus.INVALID
    assert stored.message == "expired"
    assert stored.timestamp.replace(tzinfo=timezone.utc) == when


def test_update_unknown_code_returns_false(repository) -> None:
    assert repository.update_code_status(424242, CodeStatus.VALID, "ok") is False


def test_list_codes_with_filter(repository) -> None:
    batch = repository.create_batch()
    records = repository.add_codes(batch.id, ["A", "B"])
    repository.update_code_status(records[0].id, CodeStatus.VALID, "ok")

    assert [c.code for c in repository.list_codes(batch.id)] == ["A", "B"]
    assert [c.code for c in repository.list_codes(batch.id, CodeStatus.VALID)] == ["A"]


def test_batches_with_pending_codes(repository) -> None:
    done = repository.create_batch("done")
    open_ = repository.create_batch("open")
    (d,) = repository.add_codes(done.id, ["D"])
    repository.add_codes(open_.id, ["O"])
    repository.update_code_status(d.id, CodeStatus.INVALID, "nope")

    assert repository.batches_with_pending_codes() == [open_.id]
