from __future__ import annotations

from typing import Sequence, Tuple


class ShapeMismatch(ValueError):
    """
    Raised when a raw output tensor does not match the expected [1, N, 5 + C] layout.
    """

    def __init__(self, actual: Tuple[int, ...], expected: Sequence[object], reason: str = ""):
        self.actual = tuple(actual)
        self.expected = tuple(expected)
        msg = f"Expected output shape {list(self.expected)}, got {list(self.actual)}"
        if reason:
            msg = f"{msg}: {reason}"
        super().__init__(msg)


class ModelUnavailable(RuntimeError):
    """
    The inference collaborator could not produce an output tensor.
    """
