"""Store contract tests, run against both backends."""
import threading

import pytest

from examgate.errors import ValidationError
from examgate.store import (
    STATUS_CREATED,
    STATUS_STARTED,
    STATUS_SUBMITTED,
    generate_token,
)


def test_config_defaults_to_ungated(store, clock):
    config = store.get_config()
    assert config.open_at_utc == 0
    assert config.duration_seconds == 0
    assert config.server_now == clock.now


def test_update_config_replaces_values(store):
    store.update_config(1000, 60)
    config = store.update_config(2000, 0)
    assert (config.open_at_utc, config.duration_seconds) == (2000, 0)
    fetched = store.get_config()
    assert (fetched.open_at_utc, fetched.duration_seconds) == (2000, 0)
    assert fetched.version == 2


def test_update_config_accepts_numeric_strings(store):
    config = store.update_config("1700000000000", "90")
    assert config.open_at_utc == 1_700_000_000_000
    assert config.duration_seconds == 90


@pytest.mark.parametrize(
    "open_at, duration",
    [
        (-1, 60),
        (0, -5),
        (None, 60),
        ("soon", 60),
        (float("nan"), 60),
        (float("inf"), 60),
        (0, 1.5),
        (True, 60),
        ([], 60),
        (10**20, 60),
        ("1e30", 60),
        (0, 2**53),
    ],
)
def test_update_config_rejects_invalid(store, open_at, duration):
    store.update_config(5000, 30)
    with pytest.raises(ValidationError):
        store.update_config(open_at, duration)
    config = store.get_config()
    assert (config.open_at_utc, config.duration_seconds) == (5000, 30)


def test_create_session(store, clock):
    record = store.create_session("  Grace Hopper  ")
    assert record.status == STATUS_CREATED
    assert record.candidate_name == "Grace Hopper"
    assert record.created_at == clock.now
    assert len(record.token) == 43
    assert store.get_session(record.token).session_id == record.session_id


def test_create_session_defaults_name(store):
    assert store.create_session("").candidate_name == "Candidate"
    assert store.create_session(None).candidate_name == "Candidate"


def test_tokens_are_unique(store):
    tokens = {store.create_session(f"c{i}").token for i in range(50)}
    assert len(tokens) == 50


@pytest.mark.parametrize("bad", ["", "short", "x" * 43 + "!", "../../etc/passwd", None])
def test_unknown_tokens_not_found(store, bad):
    store.create_session("someone")
    assert store.get_session(bad) is None
    assert store.start_session(bad) is None
    assert store.submit_answers(bad, ["a"], None) is None
    assert store.presence_ping(bad, "visible") is False


def test_well_formed_unknown_token_not_found(store):
    unknown = generate_token()
    assert store.get_session(unknown) is None
    assert store.start_session(unknown) is None
    assert store.submit_answers(unknown, [], None) is None
    assert store.presence_ping(unknown, "visible") is False


def test_start_is_idempotent(store, clock, token):
    first = store.start_session(token)
    clock.advance(5000)
    second = store.start_session(token)
    assert first.status == STATUS_STARTED
    assert first.started_at == second.started_at == clock.now - 5000


def test_submit_is_first_write_wins(store, clock, token):
    store.start_session(token)
    clock.advance(1000)
    first = store.submit_answers(token, ["Paris"], {"ua": "one"})
    clock.advance(1000)
    second = store.submit_answers(token, ["London"], {"ua": "two"})

    assert second.submitted_at == first.submitted_at
    stored = store.get_session(token)
    assert stored.status == STATUS_SUBMITTED
    assert stored.answers == ["Paris"]
    assert stored.client_meta == {"ua": "one"}


def test_submit_without_start(store, token):
    record = store.submit_answers(token, None, None)
    assert record.status == STATUS_SUBMITTED
    assert record.answers == []
    assert record.started_at is None


def test_start_after_submit_keeps_status(store, token):
    store.submit_answers(token, ["a"], None)
    record = store.start_session(token)
    assert record.status == STATUS_SUBMITTED
    assert record.started_at is None


def test_status_only_moves_forward(store, token):
    seen = [store.get_session(token).status]
    for step in (
        lambda: store.start_session(token),
        lambda: store.submit_answers(token, ["x"], None),
        lambda: store.start_session(token),
        lambda: store.submit_answers(token, ["y"], None),
    ):
        step()
        status = store.get_session(token).status
        if status != seen[-1]:
            seen.append(status)
    assert seen == [STATUS_CREATED, STATUS_STARTED, STATUS_SUBMITTED]


def test_presence_recorded_in_any_status(store, clock, token):
    assert store.presence_ping(token, "visible") is True
    store.submit_answers(token, ["a"], None)
    clock.advance(250)
    assert store.presence_ping(token, {"odd": "payload"}) is True

    record = store.get_session(token)
    assert record.last_presence_status == "{'odd': 'payload'}"
    assert record.last_presence_at == clock.now
    assert record.answers == ["a"]


def test_presence_status_normalised(store, token):
    store.presence_ping(token, None)
    assert store.get_session(token).last_presence_status == "unknown"
    store.presence_ping(token, "h" * 500)
    assert len(store.get_session(token).last_presence_status) == 64


def test_list_sessions_in_creation_order(store, clock):
    names = []
    for i in range(5):
        names.append(f"candidate-{i}")
        store.create_session(names[-1])
        clock.advance(10)
    assert [r.candidate_name for r in store.list_sessions()] == names


def test_list_sessions_by_status(store):
    a = store.create_session("a")
    store.create_session("b")
    store.submit_answers(a.token, ["1"], None)
    submitted = store.list_sessions(status=STATUS_SUBMITTED)
    assert [r.candidate_name for r in submitted] == ["a"]


def test_concurrent_duplicate_submits_keep_one_answer(store, token):
    barrier = threading.Barrier(8)
    results = []

    def worker(i):
        barrier.wait()
        results.append(store.submit_answers(token, [f"answer-{i}"], None))

    threads = [threading.Thread(target=worker, args=(i,)) for i in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    stored = store.get_session(token)
    assert len(results) == 8
    assert {r.submitted_at for r in results} == {stored.submitted_at}
    assert {tuple(r.answers) for r in results} == {tuple(stored.answers)}


def test_concurrent_duplicate_starts_share_timestamp(store, clock, token):
    barrier = threading.Barrier(8)
    results = []

    def worker():
        barrier.wait()
        clock.advance(1)
        results.append(store.start_session(token).started_at)

    threads = [threading.Thread(target=worker) for _ in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert len(set(results)) == 1


def test_update_config_accepts_largest_window(store):
    config = store.update_config(2**53 - 1, 2**53 - 1)
    assert config.open_at_utc == 2**53 - 1
    assert store.get_config().duration_seconds == 2**53 - 1


def test_returned_records_do_not_alias_stored_answers(store, token):
    answers = ["Paris"]
    meta = {"tabs": [1]}
    store.submit_answers(token, answers, meta)
    answers.append("Berlin")
    meta["tabs"].append(2)

    fetched = store.get_session(token)
    fetched.answers.append("London")
    fetched.client_meta["tabs"].append(3)
    store.list_sessions()[0].answers.append("Rome")

    stored = store.get_session(token)
    assert stored.answers == ["Paris"]
    assert stored.client_meta == {"tabs": [1]}
