"""
Per-class training controls and their status text.

Holds the toolkit-independent state of the class rows: which class is
currently armed for training, and what each row's status label should
show. The Tk window renders these views; the render loop reads the
armed class once per tick.
"""
from dataclasses import dataclass
from typing import Optional

NO_EXAMPLES_TEXT = "No examples added"


class TrainingState:
    """The class currently armed for training, or None."""

    def __init__(self):
        self.armed: Optional[int] = None

    def __repr__(self) -> str:
        return f"TrainingState(armed={self.armed})"


@dataclass
class LabelView:
    """Display state of one class row."""
    text: str = NO_EXAMPLES_TEXT
    bold: bool = False


def format_status(count: int, confidence: float) -> str:
    if count == 0:
        return NO_EXAMPLES_TEXT
    return f"{count} examples — {confidence * 100:.0f}%"


class LabelController:
    """
    One training control and one status label per class.

    Holding a control arms its class; releasing it disarms. Single
    pointer assumed, so a release always clears the state.
    """

    def __init__(self, state: TrainingState | None = None):
        self.state = state if state is not None else TrainingState()
        self.views: list[LabelView] = []

    def setup(self, n: int) -> list[LabelView]:
        self.views = [LabelView() for _ in range(n)]
        return self.views

    @property
    def armed(self) -> Optional[int]:
        return self.state.armed

    def press(self, class_index: int) -> None:
        self.state.armed = class_index

    def release(self, class_index: int) -> None:
        self.state.armed = None

    def update(
        self,
        class_index: int,
        count: int,
        is_predicted: bool,
        confidence: float,
    ) -> LabelView:
        """Set row `class_index` to reflect the latest prediction."""
        view = self.views[class_index]
        view.bold = is_predicted
        view.text = format_status(count, confidence)
        return view
