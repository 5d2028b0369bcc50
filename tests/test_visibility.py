"""Tests for visibility and interactability classification."""

import pytest

from aitarget.core.dom.clickable import InteractionClassifier, is_interactive_candidate
from aitarget.core.dom.document import Viewport
from aitarget.core.dom.models import InteractionType
from aitarget.core.dom.visibility import VisibilityClassifier
from tests.builders import make_document, node


def classifiers(document):
    visibility = VisibilityClassifier(document)
    return visibility, InteractionClassifier(visibility)


class TestVisibilityClassifier:
    """Tests for VisibilityClassifier."""

    def test_plain_button_is_visible(self):
        """Test an unobstructed, in-viewport button."""
        button = node("button", box=(10, 10, 100, 30))
        visibility, _ = classifiers(make_document(button))
        assert visibility.is_visible(button) is True

    @pytest.mark.parametrize(
        "style",
        [
            {"display": "none"},
            {"visibility": "hidden"},
            {"opacity": "0"},
            {"opacity": "0.0"},
        ],
    )
    def test_hidden_styles(self, style):
        """Test each hiding style makes the node invisible."""
        button = node("button", box=(10, 10, 100, 30), style=style)
        visibility, _ = classifiers(make_document(button))
        assert visibility.is_visible(button) is False

    def test_hidden_ancestor(self):
        """Test display:none on an ancestor."""
        button = node("button", box=(10, 10, 100, 30))
        visibility, _ = classifiers(make_document(node("div", button, style={"display": "none"})))
        assert visibility.is_visible(button) is False

    def test_zero_size_box(self):
        """Test an empty box is not visible."""
        button = node("button", box=(10, 10, 0, 30))
        visibility, _ = classifiers(make_document(button))
        assert visibility.is_visible(button) is False

    def test_outside_viewport(self):
        """Test nodes below the fold are not visible."""
        button = node("button", box=(10, 800, 100, 30))
        visibility, _ = classifiers(make_document(button))
        assert visibility.is_visible(button) is False

    def test_center_below_fold(self):
        """Test a partly visible node whose center is off-screen is not visible."""
        button = node("button", box=(10, 700, 100, 60))
        visibility, _ = classifiers(make_document(button))
        assert visibility.is_visible(button) is False

    def test_occluded_by_overlay(self):
        """Test an unrelated node covering the center hides the button."""
        button = node("button", box=(10, 10, 100, 30))
        overlay = node("div", box=(0, 0, 1280, 720), style={"z-index": "10"})
        visibility, _ = classifiers(make_document(button, overlay))
        assert visibility.is_visible(button) is False

    def test_click_through_overlay(self):
        """Test pointer-events:none overlays do not occlude."""
        button = node("button", box=(10, 10, 100, 30))
        overlay = node("div", box=(0, 0, 1280, 720), style={"z-index": "10", "pointer-events": "none"})
        visibility, _ = classifiers(make_document(button, overlay))
        assert visibility.is_visible(button) is True

    def test_descendant_at_center_counts(self):
        """Test a child covering the center still means visible."""
        icon = node("span", box=(50, 15, 20, 20))
        button = node("button", icon, box=(10, 10, 100, 30))
        visibility, _ = classifiers(make_document(button))
        assert visibility.is_visible(button) is True

    def test_none_and_detached(self):
        """Test absent or detached nodes are never visible."""
        button = node("button", box=(10, 10, 100, 30))
        document = make_document(button)
        visibility, _ = classifiers(document)
        document.body.remove_child(button)
        assert visibility.is_visible(None) is False
        assert visibility.is_visible(button) is False

    def test_no_document(self):
        """Test a classifier without a document reports nothing visible."""
        assert VisibilityClassifier(None).is_visible(node("button", box=(0, 0, 10, 10))) is False

    def test_skip_occlusion(self):
        """Test the occlusion test can be switched off."""
        button = node("button", box=(10, 10, 100, 30))
        overlay = node("div", box=(0, 0, 1280, 720), style={"z-index": "10"})
        visibility, _ = classifiers(make_document(button, overlay))
        visibility.skip_occlusion = True
        assert visibility.is_visible(button) is True
        assert visibility.hit_tests == 0

    def test_hit_tests_cached_per_frame(self):
        """Test repeated checks in one frame share the hit test."""
        button = node("button", box=(10, 10, 100, 30))
        visibility, _ = classifiers(make_document(button))

        visibility.begin_frame()
        visibility.is_visible(button)
        visibility.is_visible(button)
        assert visibility.hit_tests == 1

        visibility.begin_frame()
        visibility.is_visible(button)
        assert visibility.hit_tests == 2

    def test_cheap_checks_short_circuit(self):
        """Test no hit test runs when a style check already fails."""
        button = node("button", box=(10, 10, 100, 30), style={"visibility": "hidden"})
        visibility, _ = classifiers(make_document(button))
        visibility.is_visible(button)
        assert visibility.hit_tests == 0

    def test_position_with_scroll(self):
        """Test absolute position adds the scroll offset."""
        button = node("button", box=(10, 700, 100, 40))
        document = make_document(button, viewport=Viewport(scroll_x=0, scroll_y=300))
        visibility, _ = classifiers(document)

        position = visibility.position(button)
        assert position.viewport.top == 700
        assert position.absolute.top == 1000
        assert position.center.y == 720
        assert position.visible_percentage == pytest.approx(50.0)


class TestInteractability:
    """Tests for InteractionClassifier.is_interactable."""

    def test_enabled_button(self):
        """Test a visible enabled button is interactable."""
        button = node("button", box=(10, 10, 100, 30))
        _, classifier = classifiers(make_document(button))
        assert classifier.is_interactable(button) is True

    def test_invisible_is_not_interactable(self):
        """Test interactability requires visibility."""
        button = node("button", box=(10, 10, 100, 30), style={"display": "none"})
        _, classifier = classifiers(make_document(button))
        assert classifier.is_interactable(button) is False

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"disabled": True},
            {"style": {"pointer-events": "none"}},
            {"aria_disabled": "true"},
            {"disabled_": ""},
        ],
    )
    def test_disabled_variants(self, kwargs):
        """Test every way a control can be disabled."""
        button = node("button", box=(10, 10, 100, 30), **kwargs)
        _, classifier = classifiers(make_document(button))
        assert classifier.is_interactable(button) is False

    def test_aria_disabled_false_is_fine(self):
        """Test only aria-disabled="true" disables."""
        button = node("button", box=(10, 10, 100, 30), aria_disabled="false")
        _, classifier = classifiers(make_document(button))
        assert classifier.is_interactable(button) is True


class TestInteractionClassification:
    """Tests for InteractionClassifier.classify_interaction."""

    @pytest.fixture
    def classifier(self):
        return InteractionClassifier(VisibilityClassifier(None))

    @pytest.mark.parametrize(
        ("tag", "attrs", "expected"),
        [
            ("button", {}, InteractionType.CLICK),
            ("a", {"href": "/"}, InteractionType.CLICK),
            ("summary", {}, InteractionType.CLICK),
            ("input", {"type": "checkbox"}, InteractionType.CLICK),
            ("input", {"type": "submit"}, InteractionType.CLICK),
            ("input", {"type": "file"}, InteractionType.UPLOAD),
            ("input", {"type": "range"}, InteractionType.RANGE),
            ("input", {"type": "color"}, InteractionType.COLOR),
            ("input", {"type": "datetime-local"}, InteractionType.DATE),
            ("input", {"type": "email"}, InteractionType.INPUT),
            ("input", {}, InteractionType.INPUT),
            ("textarea", {}, InteractionType.INPUT),
            ("select", {}, InteractionType.SELECT),
            ("div", {"role": "switch"}, InteractionType.CLICK),
            ("div", {"role": "searchbox"}, InteractionType.INPUT),
            ("div", {"role": "combobox"}, InteractionType.SELECT),
            ("div", {"role": "slider"}, InteractionType.RANGE),
            ("div", {"onclick": "go()"}, InteractionType.CLICK),
            ("div", {"role": "tab"}, InteractionType.INTERACT),
        ],
    )
    def test_priority_table(self, classifier, tag, attrs, expected):
        """Test the tag/type/role table."""
        assert classifier.classify_interaction(node(tag, **attrs)) is expected

    def test_cursor_pointer(self, classifier):
        """Test computed cursor:pointer means click."""
        assert classifier.classify_interaction(node("div", style={"cursor": "pointer"})) is InteractionType.CLICK

    def test_tag_beats_role(self, classifier):
        """Test tag rules are checked before role."""
        assert classifier.classify_interaction(node("button", role="slider")) is InteractionType.CLICK

    def test_candidate_matching(self, classifier):
        """Test the fixed allow-list."""
        assert classifier.is_interactive_candidate(node("button"))
        assert classifier.is_interactive_candidate(node("div", role="menuitem"))
        assert classifier.is_interactive_candidate(node("span", data_ai_action="click"))
        assert not classifier.is_interactive_candidate(node("div", onclick="go()"))

    @pytest.mark.parametrize(
        "candidate",
        [
            node("input", type="hidden"),
            node("a"),
            node("li", role="tab"),
            node("div", role="searchbox"),
        ],
    )
    def test_allow_list_members(self, candidate):
        """Test allow-listed tags and roles are candidates."""
        assert is_interactive_candidate(candidate)

    @pytest.mark.parametrize(
        "other",
        [
            node("label"),
            node("div", role="slider"),
            node("div", style={"cursor": "pointer"}),
        ],
    )
    def test_allow_list_excludes(self, other):
        """Test nodes outside the allow-list are not candidates."""
        assert not is_interactive_candidate(other)
