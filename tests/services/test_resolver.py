import pytest

from pgdumper.errors import EnumerationFailure, ResolutionFailure
from pgdumper.models import ServerDescriptor
from pgdumper.services.resolver import ConnectionResolver


class DummyLogger:
    def info(self, *_args, **_kwargs):
        return None

    def warning(self, *_args, **_kwargs):
        return None


class FakeDatabaseService:
    def __init__(self, answers):
        self.answers = answers
        self.probed = []

    def list_databases(self, endpoint):
        self.probed.append(endpoint.port)
        answer = self.answers.get(endpoint.port)
        if answer is None:
            raise EnumerationFailure(f"port {endpoint.port} refused")
        return answer


SERVER = ServerDescriptor(hostname="db1", user="backup", password="pw", port=5432)


def test_resolve_picks_first_port_that_answers():
    service = FakeDatabaseService({5432: ["app_db"], 6432: ["other"]})
    resolver = ConnectionResolver(logger=DummyLogger(), database_service=service)

    resolution = resolver.resolve(SERVER, [5432, 6432])

    assert resolution.endpoint.port == 5432
    assert resolution.databases == ("app_db",)
    assert resolution.failed_attempts == ()
    assert service.probed == [5432]


def test_resolve_falls_back_and_records_failed_attempts():
    service = FakeDatabaseService({6432: ["app_db", "analytics_db"]})
    resolver = ConnectionResolver(logger=DummyLogger(), database_service=service)

    resolution = resolver.resolve(SERVER, [5432, 6432, 7432])

    assert resolution.endpoint.port == 6432
    assert resolution.databases == ("app_db", "analytics_db")
    assert [attempt.port for attempt in resolution.failed_attempts] == [5432]
    assert "refused" in resolution.failed_attempts[0].error
    assert service.probed == [5432, 6432]


def test_resolve_accepts_port_with_empty_listing():
    service = FakeDatabaseService({5432: []})
    resolver = ConnectionResolver(logger=DummyLogger(), database_service=service)

    resolution = resolver.resolve(SERVER, [5432, 6432])

    assert resolution.endpoint.port == 5432
    assert resolution.databases == ()


def test_resolve_fails_when_no_port_answers():
    service = FakeDatabaseService({})
    resolver = ConnectionResolver(logger=DummyLogger(), database_service=service)

    with pytest.raises(ResolutionFailure, match="5432, 6432") as exc_info:
        resolver.resolve(SERVER, [5432, 6432])

    assert [attempt.port for attempt in exc_info.value.attempts] == [5432, 6432]


def test_candidate_ports_keep_order_and_skip_duplicates():
    server = ServerDescriptor(hostname="db1", user="u", port=6432, fallback_ports=(7432, 6432))

    assert server.candidate_ports((6432, 5433)) == [6432, 5433, 7432]
