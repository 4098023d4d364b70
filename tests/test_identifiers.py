import random
import threading

import pytest

from sms.classifier import clean_response
from sms.errors import ConfigurationMissing, IdentifierExhausted
from sms.identifiers import ALIAS_MAX_LENGTH, adjective_animal, evidence_token, generate_unique
from sms.outbound import OutboundCleaner
from sms.registry import SmsAppRegistry


def test_aliases_survive_cleaning():
    rng = random.Random(42)
    for _ in range(200):
        alias = adjective_animal(rng=rng)
        assert len(alias) <= ALIAS_MAX_LENGTH
        assert clean_response(alias) == alias


def test_evidence_tokens_differ():
    assert evidence_token() != evidence_token()


def test_generate_unique_retries_until_free():
    candidates = iter(["a", "b", "c"])
    taken = {"a", "b"}
    assert generate_unique(lambda: next(candidates), taken.__contains__, 5) == "c"


def test_generate_unique_is_bounded():
    calls = []

    def generate():
        calls.append(1)
        return "taken"

    with pytest.raises(IdentifierExhausted):
        generate_unique(generate, lambda value: True, 4)
    assert len(calls) == 4


# -------------------------------------------------
# Registry
# -------------------------------------------------

def test_registry_builds_once_per_pair(settings, reports):
    registry = SmsAppRegistry(settings, reports)
    built = []
    original_build = registry._build

    def counting_build(org, project):
        built.append((org, project))
        return original_build(org, project)

    registry._build = counting_build

    results = []
    threads = [
        threading.Thread(target=lambda: results.append(registry.get("acme", "incidents")))
        for _ in range(8)
    ]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert built == [("acme", "incidents")]
    assert all(r is results[0] for r in results)


def test_registry_rebuild_replaces_dialog(settings, reports):
    registry = SmsAppRegistry(settings, reports)
    first = registry.get("acme", "incidents")

    rebuilt = registry.rebuild("acme", "incidents")

    assert rebuilt is not first
    assert registry.get("acme", "incidents") is rebuilt
    assert rebuilt.questions == first.questions


def test_registry_unknown_form(settings, reports):
    registry = SmsAppRegistry(settings, reports)
    with pytest.raises(ConfigurationMissing):
        registry.get("acme", "missing")
    assert registry.snapshot() == []
    assert registry._key_locks == {}


# -------------------------------------------------
# Outbound message deletion
# -------------------------------------------------

class FlakyMessages:
    def __init__(self, failures):
        self.failures = failures
        self.deleted = []

    def __call__(self, message_id):
        parent = self

        class Message:
            def delete(self):
                if parent.failures:
                    parent.failures -= 1
                    raise RuntimeError("message not delivered yet")
                parent.deleted.append(message_id)
                return True

        return Message()


class FakeClient:
    def __init__(self, failures=0):
        self.messages = FlakyMessages(failures)


def test_deletion_retries_in_background():
    client = FakeClient(failures=2)
    cleaner = OutboundCleaner(client=client, delay=0)

    thread = cleaner.schedule("SM123")
    thread.join(timeout=5)

    assert client.messages.deleted == ["SM123"]


def test_deletion_gives_up_after_max_attempts():
    client = FakeClient(failures=10)
    cleaner = OutboundCleaner(client=client, delay=0, max_attempts=3)

    assert cleaner._delete_until_done("SM123") is False
    assert client.messages.deleted == []


def test_deletion_without_credentials_is_skipped():
    assert OutboundCleaner().schedule("SM123") is None
    assert OutboundCleaner(client=FakeClient()).schedule(None) is None
