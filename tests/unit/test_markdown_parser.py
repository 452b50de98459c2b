"""Tests for lesson_plans/markdown_parser.py."""
from lesson_plans.markdown_parser import parse_markdown_lesson_plan

FULL_ANSWER = """**Subject:** Mathematics
**Topic:** Fractions
**Class:** Primary 5
**Duration:** 40 minutes
**Teaching Aids:** Fraction charts, paper strips

## Behavioral Objectives
By the end of the lesson pupils should be able to:
- Identify proper fractions
* Compare fractions with like denominators

## Presentation and Development
### Step 1: Introduction
Show a pizza cut into four.
### Step 2: Practice
Pupils fold paper strips.

## Rationale
Concrete objects before symbols.

## Homework
Exercise 4.2, questions 1 to 5.

## References
New General Mathematics, Book 5.
"""


class TestFullAnswer:

    def setup_method(self):
        self.draft = parse_markdown_lesson_plan(FULL_ANSWER)

    def test_labels(self):
        assert self.draft.subject == "Mathematics"
        assert self.draft.title == "Fractions"
        assert self.draft.class_name == "Primary 5"
        assert self.draft.duration == "40 minutes"
        assert self.draft.resources == "Fraction charts, paper strips"

    def test_objectives_only_keep_bullets(self):
        assert self.draft.objectives == (
            "Identify proper fractions\nCompare fractions with like denominators"
        )

    def test_activities_include_sub_headings(self):
        assert self.draft.activities.startswith(
            "### Step 1: Introduction\nShow a pizza cut into four.\n### Step 2: Practice"
        )

    def test_extra_sections_appended_to_activities(self):
        assert self.draft.activities.endswith(
            "### Rationale\nConcrete objects before symbols.\n\n"
            "### Homework\nExercise 4.2, questions 1 to 5.\n\n"
            "### References\nNew General Mathematics, Book 5."
        )

    def test_extra_sections_exposed_individually(self):
        assert self.draft.rationale == "Concrete objects before symbols."
        assert self.draft.homework == "Exercise 4.2, questions 1 to 5."
        assert self.draft.references == "New General Mathematics, Book 5."


class TestPartialInput:

    def test_none_yields_empty_draft(self):
        draft = parse_markdown_lesson_plan(None)
        assert draft.model_dump() == {key: None for key in draft.model_dump()}

    def test_empty_string(self):
        assert parse_markdown_lesson_plan("").title is None

    def test_plain_labels(self):
        draft = parse_markdown_lesson_plan("Subject: English\nTopic: Verbs")
        assert draft.subject == "English"
        assert draft.title == "Verbs"
        assert draft.objectives is None
        assert draft.activities is None

    def test_empty_label_is_none(self):
        assert parse_markdown_lesson_plan("Subject:   ").subject is None

    def test_unknown_heading_closes_section(self):
        draft = parse_markdown_lesson_plan(
            "## Presentation and Development\nStep 1\n## Assessment\nQuiz at the end"
        )
        assert draft.activities == "Step 1"

    def test_only_appended_sections(self):
        draft = parse_markdown_lesson_plan("## Homework\nRead chapter 2")
        assert draft.activities == "### Homework\nRead chapter 2"

    def test_never_invents_a_date_or_times(self):
        draft = parse_markdown_lesson_plan(FULL_ANSWER)
        assert not hasattr(draft, "date")
        assert not hasattr(draft, "start_time")

    def test_free_text_without_structure(self):
        draft = parse_markdown_lesson_plan("Please provide the specific details of your class.")
        assert draft.title is None
        assert draft.activities is None
