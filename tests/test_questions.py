import textwrap
from pathlib import Path

import pytest

from sms.errors import ConfigurationMissing
from sms.questions import compile_questions, load_specification, numbered_pages, spec_path


def write_spec(spec_dir, body, org="acme", project="other"):
    path = spec_dir / org / f"{project}.yaml"
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(textwrap.dedent(body), encoding="utf-8")
    return path


def test_compile_skips_consent_page_and_keeps_order(spec):
    questions = compile_questions(spec)

    assert [(q.index, q.text, q.field_label) for q in questions] == [
        (0, "Was consent given?", "Consent"),
        (1, "Name of person filling out form", "Reporter"),
        (2, "Organisation", "Organisation"),
    ]


def test_compile_is_deterministic(spec_dir):
    first = compile_questions(load_specification(spec_dir, "acme", "incidents"))
    second = compile_questions(load_specification(spec_dir, "acme", "incidents"))
    assert first == second
    assert isinstance(first, tuple)


def test_pages_sorted_numerically_not_lexically():
    assert numbered_pages({"p10": [], "p2": [], "index": [], "p0": [], "p1": []}) == [
        "p0", "p1", "p2", "p10",
    ]


def test_test_org_uses_live_spec(tmp_path):
    assert spec_path(tmp_path, "acme-test", "incidents") == tmp_path / "acme" / "incidents.yaml"


def test_missing_spec_is_configuration_missing(spec_dir):
    with pytest.raises(ConfigurationMissing):
        load_specification(spec_dir, "nobody", "nothing")


def test_unpaired_item_is_rejected(spec_dir):
    write_spec(spec_dir, """
        version: 1
        pages:
          p0: []
          p1:
            - text: "# Lonely question"
    """)

    with pytest.raises(ConfigurationMissing):
        compile_questions(load_specification(spec_dir, "acme", "other"))


def test_spec_without_pages_is_rejected(spec_dir):
    write_spec(spec_dir, "version: 1\n")

    with pytest.raises(ConfigurationMissing):
        load_specification(spec_dir, "acme", "other")


def test_bundled_specification_compiles():
    spec = load_specification(Path(__file__).parent.parent / "specs", "hfrn-test", "hfrn-en")
    questions = compile_questions(spec)
    assert questions[0].field_label == "Consent given"
    assert len(questions) == 6
