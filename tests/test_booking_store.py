import threading
from concurrent.futures import ThreadPoolExecutor
from datetime import date
from decimal import Decimal

import pytest
from sqlalchemy.exc import OperationalError

from src.bookings.exceptions import BookingNotFound, InvalidTransition, StoreUnavailable, TokenSpaceExhausted
from src.bookings.schemas import BookingStatus, CredentialCandidate, GuestCounts
from src.bookings.store import InMemoryBookingStore, SqlBookingStore
from src.bookings.token_service import TokenGenerator


class SequenceTokenGenerator:
    """Hands out a fixed list of tokens, then repeats the last one"""

    def __init__(self, tokens):
        self.tokens = list(tokens)
        self.calls = 0

    def generate(self):
        token = self.tokens[min(self.calls, len(self.tokens) - 1)]
        self.calls += 1
        return token


def make_candidate(owner_ref="u1", visit_date=date(2025, 3, 10), status=BookingStatus.CONFIRMED):
    return CredentialCandidate(
        owner_ref=owner_ref,
        visited_entity_ref="monumentA",
        visited_entity_name="Monument A",
        visit_date=visit_date,
        guests=GuestCounts(adults=1),
        total_amount=Decimal("50"),
        expiry_date=date.fromordinal(visit_date.toordinal() + 1),
        status=status,
    )


@pytest.fixture(params=["memory", "sql"])
def make_store(request, db_session):
    def factory(generator=None, max_attempts=5):
        generator = generator or TokenGenerator()
        if request.param == "memory":
            return InMemoryBookingStore(generator, max_attempts=max_attempts)
        return SqlBookingStore(db_session, generator, max_attempts=max_attempts)
    return factory


def test_create_assigns_id_token_and_status(make_store):
    store = make_store()
    credential = store.create(make_candidate())

    assert credential.id is not None
    assert len(credential.token) == 12
    assert credential.status == BookingStatus.CONFIRMED
    assert credential.expiry_date == date(2025, 3, 11)
    assert credential.qr_code_url is None
    assert credential.created_at is not None


def test_create_retries_after_token_collision(make_store):
    generator = SequenceTokenGenerator(["AAAAAAAAAA11", "AAAAAAAAAA11", "BBBBBBBBBB22"])
    store = make_store(generator)

    first = store.create(make_candidate())
    second = store.create(make_candidate())

    assert first.token == "AAAAAAAAAA11"
    assert second.token == "BBBBBBBBBB22"
    assert generator.calls == 3


def test_create_gives_up_after_bounded_attempts(make_store):
    generator = SequenceTokenGenerator(["SAMESAMESAME"])
    store = make_store(generator, max_attempts=5)
    store.create(make_candidate())

    with pytest.raises(TokenSpaceExhausted) as exc_info:
        store.create(make_candidate(owner_ref="u2"))

    assert exc_info.value.attempts == 5
    assert generator.calls == 6
    assert store.list_by_owner("u2") == []


def test_find_by_token_is_exact_and_case_sensitive(make_store):
    store = make_store(SequenceTokenGenerator(["AbCdEfGhIj12"]))
    credential = store.create(make_candidate())

    assert store.find_by_token("AbCdEfGhIj12").id == credential.id
    with pytest.raises(BookingNotFound):
        store.find_by_token("abcdefghij12")
    with pytest.raises(BookingNotFound):
        store.find_by_token("AbCdEfGhIj1")


def test_attach_encoded_payload(make_store):
    store = make_store()
    credential = store.create(make_candidate())

    updated = store.attach_encoded_payload(credential.id, "data:image/png;base64,AAAA")

    assert updated.qr_code_url == "data:image/png;base64,AAAA"
    assert store.find_by_token(credential.token).qr_code_url == "data:image/png;base64,AAAA"


def test_attach_encoded_payload_to_missing_booking(make_store):
    with pytest.raises(BookingNotFound):
        make_store().attach_encoded_payload(999, "data:image/png;base64,AAAA")


def test_list_by_owner_is_most_recent_first(make_store):
    store = make_store()
    first = store.create(make_candidate(owner_ref="u1"))
    store.create(make_candidate(owner_ref="u2"))
    third = store.create(make_candidate(owner_ref="u1"))

    assert [c.id for c in store.list_by_owner("u1")] == [third.id, first.id]
    assert store.list_by_owner("nobody") == []


def test_transition_follows_state_machine(make_store):
    store = make_store()
    credential = store.create(make_candidate())

    cancelled = store.transition_status(credential.id, BookingStatus.CANCELLED)
    assert cancelled.status == BookingStatus.CANCELLED

    with pytest.raises(InvalidTransition):
        store.transition_status(credential.id, BookingStatus.CONFIRMED)
    with pytest.raises(InvalidTransition):
        store.transition_status(credential.id, BookingStatus.COMPLETED)

    # Repeating the terminal status is a no-op
    assert store.transition_status(credential.id, BookingStatus.CANCELLED).status == BookingStatus.CANCELLED


def test_pending_booking_can_be_confirmed_then_completed(make_store):
    store = make_store()
    credential = store.create(make_candidate(status=BookingStatus.PENDING))
    assert credential.status == BookingStatus.PENDING

    assert store.transition_status(credential.id, BookingStatus.CONFIRMED).status == BookingStatus.CONFIRMED
    assert store.transition_status(credential.id, BookingStatus.CONFIRMED).status == BookingStatus.CONFIRMED
    assert store.transition_status(credential.id, BookingStatus.COMPLETED).status == BookingStatus.COMPLETED


def test_transition_missing_booking(make_store):
    with pytest.raises(BookingNotFound):
        make_store().transition_status(42, BookingStatus.CANCELLED)


def test_list_expirable_skips_terminal_and_future(make_store):
    store = make_store()
    lapsed = store.create(make_candidate(visit_date=date(2025, 3, 1)))
    cancelled = store.create(make_candidate(visit_date=date(2025, 3, 1)))
    store.transition_status(cancelled.id, BookingStatus.CANCELLED)
    store.create(make_candidate(visit_date=date(2025, 4, 1)))

    assert [c.id for c in store.list_expirable(date(2025, 3, 10))] == [lapsed.id]


def test_mark_expired_reports_whether_it_changed_the_booking(make_store):
    store = make_store()
    lapsed = store.create(make_candidate(visit_date=date(2025, 3, 1)))
    cancelled = store.create(make_candidate(visit_date=date(2025, 3, 1)))
    store.transition_status(cancelled.id, BookingStatus.CANCELLED)

    assert store.mark_expired(lapsed.id) is True
    assert store.get(lapsed.id).status == BookingStatus.EXPIRED
    assert store.mark_expired(lapsed.id) is False
    assert store.mark_expired(cancelled.id) is False
    assert store.get(cancelled.id).status == BookingStatus.CANCELLED

    with pytest.raises(BookingNotFound):
        store.mark_expired(999)


def database_down(*args, **kwargs):
    raise OperationalError("SELECT", {}, Exception("database is locked"))


def test_sql_store_reports_commit_failure_as_unavailable(db_session, monkeypatch):
    store = SqlBookingStore(db_session, TokenGenerator())
    monkeypatch.setattr(db_session, "commit", database_down)

    with pytest.raises(StoreUnavailable) as exc_info:
        store.create(make_candidate())

    assert exc_info.value.kind == "store_unavailable"


def test_sql_store_reports_query_failure_as_unavailable(db_session, monkeypatch):
    store = SqlBookingStore(db_session, TokenGenerator())
    credential = store.create(make_candidate())
    monkeypatch.setattr(db_session, "query", database_down)

    with pytest.raises(StoreUnavailable):
        store.find_by_token(credential.token)
    with pytest.raises(StoreUnavailable):
        store.list_by_owner("u1")
    with pytest.raises(StoreUnavailable):
        store.transition_status(credential.id, BookingStatus.CANCELLED)
    with pytest.raises(StoreUnavailable):
        store.list_expirable(date(2025, 3, 10))


class CollidingTokenGenerator:
    """Each thread alternates between a token known to be taken and a fresh one"""

    def __init__(self, taken_token):
        self.taken_token = taken_token
        self.fresh = TokenGenerator()
        self.local = threading.local()
        self.lock = threading.Lock()
        self.collisions_served = 0

    def generate(self):
        serve_taken = not getattr(self.local, "served_taken", False)
        self.local.served_taken = serve_taken
        if serve_taken:
            with self.lock:
                self.collisions_served += 1
            return self.taken_token
        return self.fresh.generate()


def test_concurrent_creates_never_share_a_token():
    store = InMemoryBookingStore(SequenceTokenGenerator(["TAKENTAKEN00"]))
    seed = store.create(make_candidate(owner_ref="seed"))

    generator = CollidingTokenGenerator(seed.token)
    store.token_generator = generator

    with ThreadPoolExecutor(max_workers=32) as pool:
        credentials = list(pool.map(lambda i: store.create(make_candidate(owner_ref=f"u{i}")), range(1000)))

    tokens = [c.token for c in credentials] + [seed.token]
    assert len(set(tokens)) == 1001
    assert len({c.id for c in credentials}) == 1000
    assert generator.collisions_served == 1000


def test_racing_identical_tokens_admit_exactly_one_winner():
    workers = 50
    barrier = threading.Barrier(workers, timeout=30)
    fresh = TokenGenerator()

    class RacingGenerator:
        def __init__(self):
            self.local = threading.local()

        def generate(self):
            if not getattr(self.local, "raced", False):
                self.local.raced = True
                barrier.wait()
                return "RACERACERACE"
            return fresh.generate()

    store = InMemoryBookingStore(RacingGenerator())

    with ThreadPoolExecutor(max_workers=workers) as pool:
        credentials = list(pool.map(lambda i: store.create(make_candidate(owner_ref=f"r{i}")), range(workers)))

    assert len({c.token for c in credentials}) == workers
    assert sum(1 for c in credentials if c.token == "RACERACERACE") == 1
