"""Tests for target id and interaction type assignment."""

import random
import re

import pytest

from aitarget.core.dom.clickable import InteractionClassifier
from aitarget.core.dom.identity import (
    IdentityAssigner,
    normalize_slug,
    parse_interaction,
    sanitize_attribute_slug,
)
from aitarget.core.dom.models import InteractionType
from aitarget.core.dom.visibility import VisibilityClassifier
from aitarget.core.models.config import IdentityConfig
from tests.builders import node

RANDOM_BUTTON_ID = re.compile(r"^ai-target-button-[0-9a-z]{6}$")


@pytest.fixture
def assigner() -> IdentityAssigner:
    classifier = InteractionClassifier(VisibilityClassifier(None))
    return IdentityAssigner(classifier, rng=random.Random(7))


class TestNormalizeSlug:
    """Tests for slug normalisation."""

    @pytest.mark.parametrize(
        ("text", "expected"),
        [
            ("submit-btn", "submit-btn"),
            ("Sign in →", "sign-in"),
            ("  Add   to\tcart ", "add-to-cart"),
            ("user_name", "user_name"),
            ("--Save--Draft--", "save-draft"),
            ("Ünïcode", "ncode"),
            ("!!!", ""),
        ],
    )
    def test_normalize(self, text, expected):
        """Test whitespace, case and character filtering."""
        assert normalize_slug(text) == expected


class TestSanitizeAttributeSlug:
    """Tests for slugs taken from authored identifiers."""

    @pytest.mark.parametrize(
        ("value", "expected"),
        [
            ("loginBtn", "loginBtn"),
            ("user[email]", "user-email"),
            ("order.items[0].qty", "order-items-0-qty"),
            ("  Save Draft ", "Save-Draft"),
            ("!!!", ""),
        ],
    )
    def test_sanitize(self, value, expected):
        """Test case is kept and invalid characters become hyphens."""
        assert sanitize_attribute_slug(value) == expected


class TestParseInteraction:
    """Tests for reading a persisted action marker."""

    def test_known_values(self):
        """Test valid markers parse regardless of case."""
        assert parse_interaction("click") is InteractionType.CLICK
        assert parse_interaction(" Upload ") is InteractionType.UPLOAD

    def test_unknown_values(self):
        """Test missing or unknown markers give None."""
        assert parse_interaction(None) is None
        assert parse_interaction("") is None
        assert parse_interaction("teleport") is None


class TestIdentityAssigner:
    """Tests for IdentityAssigner."""

    def test_id_attribute_source(self, assigner):
        """Test the id attribute produces a descriptive target id."""
        button = node("button", text="Sign in", id="submit-btn", type="submit")
        identity = assigner.assign_identity(button)

        assert identity.target_id == "ai-target-submit-btn"
        assert identity.interaction_type is InteractionType.CLICK

    def test_markers_written_back(self, assigner):
        """Test both markers are persisted on the node."""
        field = node("input", type="email", name="email", placeholder="Email")
        identity = assigner.assign_identity(field)

        assert identity.target_id == "ai-target-email"
        assert identity.interaction_type is InteractionType.INPUT
        assert field.get_attribute("data-ai-target") == "ai-target-email"
        assert field.get_attribute("data-ai-action") == "input"

    @pytest.mark.parametrize(
        ("attrs", "expected"),
        [
            ({"id": "save", "aria_label": "Store"}, "ai-target-save"),
            ({"data_testid": "checkout", "aria_label": "Pay"}, "ai-target-checkout"),
            ({"aria_label": "Close dialog", "name": "close"}, "ai-target-close-dialog"),
            ({"name": "q", "placeholder": "Search"}, "ai-target-q"),
            ({"id": "!!!", "name": "fallback"}, "ai-target-fallback"),
        ],
    )
    def test_source_priority(self, assigner, attrs, expected):
        """Test sources are tried in order and empty slugs are skipped."""
        assert assigner.assign_identity(node("button", text="Ignored", **attrs)).target_id == expected

    def test_mixed_case_id_is_kept(self, assigner):
        """Test the page's own id value survives unchanged."""
        assert assigner.assign_identity(node("button", id="loginBtn")).target_id == "ai-target-loginBtn"

    def test_bracketed_name(self, assigner):
        """Test bracket characters in a field name become hyphens."""
        field = node("input", type="email", name="user[email]")
        assert assigner.assign_identity(field).target_id == "ai-target-user-email"

    def test_aria_label_is_still_lowercased(self, assigner):
        """Test free-text sources are normalized."""
        assert assigner.assign_identity(node("button", aria_label="Open Menu")).target_id == "ai-target-open-menu"

    def test_short_text_source(self, assigner):
        """Test short visible text is used when no attribute applies."""
        assert assigner.assign_identity(node("a", text="Pricing")).target_id == "ai-target-pricing"

    def test_long_text_falls_back_to_random(self, assigner):
        """Test text of twenty characters or more is not used."""
        button = node("button", text="Continue to the payment page")
        assert RANDOM_BUTTON_ID.match(assigner.assign_identity(button).target_id)

    def test_random_fallback_shape(self, assigner):
        """Test random ids carry the tag and a base-36 suffix."""
        assert RANDOM_BUTTON_ID.match(assigner.assign_identity(node("button")).target_id)

    def test_existing_markers_are_kept(self, assigner):
        """Test a node that already carries markers keeps them."""
        field = node("div", id="other", data_ai_target="ai-target-keep", data_ai_action="input")
        identity = assigner.assign_identity(field)

        assert identity.target_id == "ai-target-keep"
        assert identity.interaction_type is InteractionType.INPUT

    def test_invalid_action_marker_is_left_alone(self, assigner):
        """Test an unknown action is reclassified without overwriting the attribute."""
        button = node("button", id="go", data_ai_action="teleport")
        identity = assigner.assign_identity(button)

        assert identity.interaction_type is InteractionType.CLICK
        assert button.get_attribute("data-ai-action") == "teleport"

    def test_repeated_assignment_is_stable(self, assigner):
        """Test a second assignment returns the same identity."""
        button = node("button")
        first = assigner.assign_identity(button)
        assert assigner.assign_identity(button) == first

    def test_descriptive_collision_gets_suffix(self, assigner):
        """Test reserved descriptive ids get numeric suffixes."""
        reserved = {"ai-target-save"}
        assert assigner.assign_identity(node("button", text="Save"), reserved).target_id == "ai-target-save-2"

        reserved = {"ai-target-save", "ai-target-save-2"}
        assert assigner.assign_identity(node("button", text="Save"), reserved).target_id == "ai-target-save-3"

    def test_random_id_checks_is_taken(self):
        """Test random ids avoid ids reported as taken."""
        classifier = InteractionClassifier(VisibilityClassifier(None))
        seen = []

        def is_taken(candidate):
            seen.append(candidate)
            return len(seen) == 1

        assigner = IdentityAssigner(classifier, rng=random.Random(1))
        target_id = assigner.assign_identity(node("button"), is_taken=is_taken).target_id

        assert len(seen) == 2
        assert target_id == seen[1]
        assert target_id != seen[0]

    def test_random_id_widens_when_retries_exhausted(self):
        """Test an exhausted retry budget widens the suffix instead of failing."""
        classifier = InteractionClassifier(VisibilityClassifier(None))
        assigner = IdentityAssigner(
            classifier,
            IdentityConfig(max_collision_retries=1),
            rng=random.Random(3),
        )
        short = len("ai-target-button-") + 6

        target_id = assigner.assign_identity(node("button"), is_taken=lambda c: len(c) <= short).target_id

        assert re.match(r"^ai-target-button-[0-9a-z]{7}$", target_id)

    def test_derive_does_not_touch_node(self, assigner):
        """Test derive_target_id is side-effect free."""
        button = node("button", id="preview")
        assert assigner.derive_target_id(button) == "ai-target-preview"
        assert button.get_attribute("data-ai-target") is None
