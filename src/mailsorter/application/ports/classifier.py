from __future__ import annotations

from typing import Protocol


class Classifier(Protocol):
    def classify(self, content: str) -> str: ...
