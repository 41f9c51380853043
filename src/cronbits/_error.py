from __future__ import annotations

from dataclasses import dataclass
from typing import Literal


@dataclass(frozen=True, slots=True)
class Span:
    start: int
    end: int


CronErrorKind = Literal["syntax", "range", "timezone", "render"]


class CronError(Exception):
    kind: CronErrorKind
    span: Span | None
    input_text: str | None

    def __init__(
        self,
        kind: CronErrorKind,
        message: str,
        span: Span | None = None,
        input_text: str | None = None,
    ) -> None:
        super().__init__(message)
        self.kind = kind
        self.span = span
        self.input_text = input_text

    @classmethod
    def syntax(cls, message: str, span: Span | None = None, input_text: str | None = None) -> CronError:
        return cls("syntax", message, span, input_text)

    @classmethod
    def range(cls, message: str, span: Span | None = None, input_text: str | None = None) -> CronError:
        return cls("range", message, span, input_text)

    @classmethod
    def timezone(cls, message: str, input_text: str | None = None) -> CronError:
        return cls("timezone", message, None, input_text)

    @classmethod
    def render(cls, message: str) -> CronError:
        return cls("render", message)

    def display_rich(self) -> str:
        if self.span and self.input_text:
            out = f"error: {self}\n"
            out += f"  {self.input_text}\n"
            padding = " " * (self.span.start + 2)
            underline = "^" * max(self.span.end - self.span.start, 1)
            return out + padding + underline
        return f"error: {self}"
