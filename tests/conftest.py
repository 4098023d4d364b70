import itertools
import textwrap

import pytest

from config import Settings
from reports.storage import ReportStore
from sms.dialog import SmsDialog
from sms.questions import compile_questions, load_specification

SPEC_YAML = textwrap.dedent("""
    version: 2
    pages:
      p0:
        - text: "# Consent"
      p1:
        - text: "# Was consent given?"
        - input: { name: consent, label: Consent }
        - text: "# Name of person filling out form"
        - input: { name: reporter, label: Reporter }
      p2:
        - text: "# Organisation"
        - input: { name: organisation, label: Organisation }
""")


class FakeCleaner:
    def __init__(self):
        self.scheduled = []

    def schedule(self, message_id):
        self.scheduled.append(message_id)


@pytest.fixture
def spec_dir(tmp_path):
    path = tmp_path / "specs" / "acme"
    path.mkdir(parents=True)
    (path / "incidents.yaml").write_text(SPEC_YAML, encoding="utf-8")
    return tmp_path / "specs"


@pytest.fixture
def settings(tmp_path, spec_dir):
    return Settings(
        sms_db_path=str(tmp_path / "data" / "sms.db"),
        spec_dir=str(spec_dir),
        help_phone_number="0800 000",
        evidence_base_url="https://sms.example.org",
    )


@pytest.fixture
def reports(settings):
    store = ReportStore(settings.sms_db_path)
    store.init_db()
    return store


@pytest.fixture
def spec(spec_dir):
    return load_specification(spec_dir, "acme", "incidents")


@pytest.fixture
def dialog(spec, reports):
    aliases = (f"brave otter{i}" if i else "brave otter" for i in itertools.count())
    tokens = (f"token{i}" for i in itertools.count())
    return SmsDialog(
        "acme",
        "incidents",
        spec,
        compile_questions(spec),
        reports,
        help_phone="0800 000",
        evidence_base_url="https://sms.example.org",
        max_attempts=5,
        alias_generator=lambda: next(aliases),
        token_generator=lambda: next(tokens),
    )


class Conversation:
    """Feeds texts through a dialog, carrying tokens between turns."""

    def __init__(self, dialog, tokens=None):
        self.dialog = dialog
        self.tokens = dict(tokens or {})
        self.last = None

    def send(self, text):
        self.last = self.dialog.handle(text, self.tokens, user_agent="pytest")
        self.tokens = self.last.tokens
        return self.last.reply_text

    @property
    def sms_type(self):
        return self.last.sms_type


@pytest.fixture
def convo(dialog):
    return Conversation(dialog)


@pytest.fixture
def make_convo(dialog):
    return lambda tokens=None: Conversation(dialog, tokens)


@pytest.fixture
def cleaner():
    return FakeCleaner()
