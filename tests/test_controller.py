"""Tests for the controller module."""
from knn_camera.controller import (
    LabelController,
    LabelView,
    TrainingState,
    NO_EXAMPLES_TEXT,
)


class TestTrainingState:
    def test_starts_disarmed(self):
        assert TrainingState().armed is None

    def test_press_and_release(self):
        controller = LabelController()
        controller.setup(3)
        controller.press(2)
        assert controller.armed == 2
        controller.release(2)
        assert controller.armed is None

    def test_shared_state_holder(self):
        state = TrainingState()
        controller = LabelController(state)
        controller.press(1)
        assert state.armed == 1


class TestLabelController:
    def test_setup_creates_views(self):
        views = LabelController().setup(3)
        assert views == [LabelView(), LabelView(), LabelView()]
        assert views[0].text == NO_EXAMPLES_TEXT

    def test_update_formats_status(self):
        controller = LabelController()
        controller.setup(3)
        view = controller.update(0, 5, True, 1.0)
        assert view.text == "5 examples — 100%"
        assert view.bold

    def test_update_zero_examples(self):
        controller = LabelController()
        controller.setup(3)
        view = controller.update(1, 0, False, 0.0)
        assert view.text == NO_EXAMPLES_TEXT
        assert not view.bold

    def test_update_is_idempotent(self):
        controller = LabelController()
        controller.setup(3)
        controller.update(2, 4, False, 0.25)
        first = LabelView(controller.views[2].text, controller.views[2].bold)
        controller.update(2, 4, False, 0.25)
        assert controller.views[2] == first
        assert first.text == "4 examples — 25%"

    def test_emphasis_moves_with_prediction(self):
        controller = LabelController()
        controller.setup(2)
        controller.update(0, 1, True, 1.0)
        controller.update(1, 0, False, 0.0)
        controller.update(0, 1, False, 0.0)
        controller.update(1, 1, True, 1.0)
        assert [v.bold for v in controller.views] == [False, True]
