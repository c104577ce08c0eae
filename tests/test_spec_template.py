"""Tests for spec naming and the spec template."""

import pytest

from devflow.workflows.implement.spec_template import (
    generate_spec_template,
    get_spec_file_name,
    get_spec_path,
    slugify,
)


class TestSlugify:
    """Tests for slugify()."""

    @pytest.mark.parametrize("description,expected", [
        ("Add dark mode toggle", "add-dark-mode-toggle"),
        ("  Fix: login (OAuth) bug!  ", "fix-login-oauth-bug"),
        ("UPPER_case", "upper-case"),
        ("!!!", ""),
    ])
    def test_slugs(self, description, expected):
        assert slugify(description) == expected

    def test_truncates_without_trailing_dash(self):
        slug = slugify("word " * 30)

        assert len(slug) <= 50
        assert not slug.endswith("-")


class TestSpecPath:
    """Tests for spec file naming."""

    def test_file_name(self):
        assert get_spec_file_name("Add dark mode toggle") == "add-dark-mode-toggle.md"

    def test_fallback_for_empty_slug(self):
        assert get_spec_file_name("???", fallback="spec-impl-1") == "spec-impl-1.md"

    @pytest.mark.parametrize("specs_dir", ["specs", "specs/"])
    def test_path_joins_specs_dir(self, specs_dir):
        assert get_spec_path("Add toggle", specs_dir) == "specs/add-toggle.md"

    def test_empty_specs_dir(self):
        assert get_spec_path("Add toggle", "") == "add-toggle.md"


class TestGenerateSpecTemplate:
    """Tests for generate_spec_template()."""

    def test_header_fields(self):
        text = generate_spec_template("Add toggle", "/work/app", "python", [])

        assert text.startswith("# Implementation Spec: Add toggle\n")
        assert "> Project: /work/app" in text
        assert "> Environment: python" in text
        assert "## Testing Strategy" in text

    def test_section_per_reviewer(self):
        text = generate_spec_template("Add toggle", "/work/app", "python", ["r1", "r2"])

        assert "### r1 Review" in text
        assert "### r2 Review" in text
        assert text.index("### r1 Review") < text.index("### r2 Review")

    def test_no_reviewers_note(self):
        text = generate_spec_template("Add toggle", "/work/app", "python", [])

        assert "No reviewers configured" in text
