"""
Parser for AI-generated lesson plan markdown.

The AI endpoint answers with a loosely fixed layout:

    Subject: Mathematics
    Topic: Fractions
    Class: Primary 5
    Duration: 40 minutes
    Teaching Aids: Fraction charts
    ## Behavioral Objectives
    - Identify proper fractions
    ## Presentation and Development
    Step 1: ...
    ## Rationale / ## Homework / ## References

Extraction is best effort. Any input, including None, yields a LessonPlanDraft
whose fields are strings or None.
"""
import re
from typing import Dict, List, Optional

from shared.models.domain import LessonPlanDraft

_LABEL_PATTERN = re.compile(
    r"^\*{0,2}(Subject|Topic|Class|Duration|Teaching Aids)\*{0,2}\s*:\s*\*{0,2}\s*(.*?)\s*$"
)
_HEADING_PATTERN = re.compile(r"^#{1,2}\s")
_BULLET_PATTERN = re.compile(r"^[-*]\s+")

_LABEL_FIELDS = {
    "Subject": "subject",
    "Topic": "title",
    "Class": "class_name",
    "Duration": "duration",
    "Teaching Aids": "resources",
}

_SECTIONS = {
    "## Behavioral Objectives": "objectives",
    "## Presentation and Development": "activities",
    "## Rationale": "rationale",
    "## Homework": "homework",
    "## References": "references",
}

# Sections with no column of their own, appended to activities in this order
_APPENDED_SECTIONS = (
    ("rationale", "Rationale"),
    ("homework", "Homework"),
    ("references", "References"),
)


def _joined(lines: List[str]) -> Optional[str]:
    return "\n".join(lines) if lines else None


def _section_for(line: str) -> Optional[str]:
    for header, section in _SECTIONS.items():
        if line.startswith(header):
            return section
    return None


def parse_markdown_lesson_plan(markdown: Optional[str]) -> LessonPlanDraft:
    """Extract lesson plan fields from AI markdown. Never raises."""
    if not isinstance(markdown, str) or not markdown:
        return LessonPlanDraft()

    fields: Dict[str, Optional[str]] = {}
    collected: Dict[str, List[str]] = {section: [] for section in _SECTIONS.values()}
    current: Optional[str] = None

    for raw_line in markdown.splitlines():
        line = raw_line.strip()

        label = _LABEL_PATTERN.match(line)
        if label:
            value = label.group(2).strip("*").strip()
            fields[_LABEL_FIELDS[label.group(1)]] = value or None
            continue

        section = _section_for(line)
        if section:
            current = section
            continue

        if _HEADING_PATTERN.match(line):
            current = None
            continue

        if current is None or not line:
            continue

        if current == "objectives":
            bullet = _BULLET_PATTERN.match(line)
            if bullet:
                collected["objectives"].append(line[bullet.end():])
        else:
            collected[current].append(line)

    extras = {name: _joined(collected[name]) for name, _ in _APPENDED_SECTIONS}

    activity_parts = []
    if collected["activities"]:
        activity_parts.append("\n".join(collected["activities"]))
    for name, title in _APPENDED_SECTIONS:
        if extras[name]:
            activity_parts.append(f"### {title}\n{extras[name]}")

    return LessonPlanDraft(
        title=fields.get("title"),
        subject=fields.get("subject"),
        class_name=fields.get("class_name"),
        duration=fields.get("duration"),
        resources=fields.get("resources"),
        objectives=_joined(collected["objectives"]),
        activities="\n\n".join(activity_parts) if activity_parts else None,
        rationale=extras["rationale"],
        homework=extras["homework"],
        references=extras["references"],
    )
