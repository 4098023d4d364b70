"""
Form specifications and their compilation into SMS questions.

A specification is a YAML file at <SPEC_DIR>/<org>/<project>.yaml:

    version: 3
    pages:
      p0: [...]                 # consent / intro page, never asked over SMS
      p1:
        - text: "# Was consent given?"
        - input: { name: consent, label: Consent }
      p2: ...
    sms:                        # optional
      intro: "..."
"""
import logging
import re
from dataclasses import dataclass
from pathlib import Path

import yaml

from sms.errors import ConfigurationMissing

logger = logging.getLogger(__name__)

PAGE_KEY = re.compile(r"^p([0-9]+)$")
HEADING_MARKER = re.compile(r"^#+\s*")


@dataclass(frozen=True)
class Question:
    index: int
    text: str
    field_label: str


@dataclass(frozen=True)
class FormSpecification:
    org: str
    project: str
    version: object
    pages: dict
    sms: dict


def spec_path(spec_dir, org: str, project: str) -> Path:
    # test organisations share the live organisation's forms
    canonical_org = org.replace("-test", "")
    return Path(spec_dir) / canonical_org / f"{project}.yaml"


def load_specification(spec_dir, org: str, project: str) -> FormSpecification:
    path = spec_path(spec_dir, org, project)
    if not path.exists():
        raise ConfigurationMissing(f"No form specification for {org}/{project} at {path}")

    try:
        raw = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as e:
        raise ConfigurationMissing(f"Form specification {path} is not valid YAML: {e}") from e

    if not isinstance(raw.get("pages"), dict):
        raise ConfigurationMissing(f"Form specification {path} has no pages")

    return FormSpecification(
        org=org,
        project=project,
        version=raw.get("version"),
        pages=raw["pages"],
        sms=raw.get("sms") or {},
    )


def numbered_pages(pages: dict) -> list:
    """Page ids matching p<N>, in ascending numeric order."""
    numbered = []
    for key in pages:
        match = PAGE_KEY.match(str(key))
        if match:
            numbered.append((int(match.group(1)), key))
    return [key for _, key in sorted(numbered)]


def compile_questions(spec: FormSpecification) -> tuple:
    """
    Turn a form specification into the ordered, immutable question list.

    The first numbered page is the consent page and is skipped. Every other
    page contributes (text, input) pairs in file order; the input's label is
    the report field the answer is stored under.
    """
    questions = []

    for page_id in numbered_pages(spec.pages)[1:]:
        items = spec.pages[page_id] or []
        if len(items) % 2:
            raise ConfigurationMissing(
                f"{spec.org}/{spec.project} page {page_id} has an unpaired item"
            )

        for i in range(0, len(items), 2):
            text_item, input_item = items[i], items[i + 1]
            try:
                text = text_item["text"]
                label = input_item["input"]["label"]
            except (KeyError, TypeError) as e:
                raise ConfigurationMissing(
                    f"{spec.org}/{spec.project} page {page_id} item {i} is not a text/input pair"
                ) from e

            questions.append(Question(
                index=len(questions),
                text=HEADING_MARKER.sub("", str(text)),
                field_label=str(label),
            ))

    logger.info(
        "Compiled %d SMS questions for %s/%s (version %s)",
        len(questions), spec.org, spec.project, spec.version,
    )
    return tuple(questions)
