from __future__ import annotations

import threading
import time
from typing import Any, Dict, List, Optional

from polymind.services.diagram_renderer import EngineConfig, EngineHandle
from polymind.services.rendering_engines import EngineError

SVG = '<svg xmlns="http://www.w3.org/2000/svg" width="120" height="80" style="max-width: 120px;"><g>{marker}</g></svg>'


class FakeEngine:
    """Stands in for the hosted renderer; records every diagram it sees."""

    name = "fake"

    def __init__(
        self,
        fail_on: Optional[str] = None,
        delay: float = 0.0,
        gate: Optional[threading.Event] = None,
        gate_on: Optional[str] = None,
        error: Optional[Exception] = None,
    ) -> None:
        self.fail_on = fail_on
        self.delay = delay
        self.gate = gate
        self.gate_on = gate_on
        self.error = error
        self.calls: List[str] = []

    def render(self, source: str) -> str:
        self.calls.append(source)
        if self.gate is not None and (self.gate_on is None or self.gate_on in source):
            self.gate.wait(5)
        if self.delay:
            time.sleep(self.delay)
        if self.error is not None:
            raise self.error
        if self.fail_on and self.fail_on in source:
            raise EngineError("Parse error on line 2")
        marker = source.splitlines()[-1]
        return SVG.format(marker=marker)


def make_handle(engine: Optional[FakeEngine] = None) -> EngineHandle:
    return EngineHandle(engine=engine or FakeEngine(), config=EngineConfig())


class StubLLM:
    def __init__(self, reply: str = "OK", error: Optional[Exception] = None) -> None:
        self.reply = reply
        self.error = error
        self.calls: List[List[Dict[str, Any]]] = []

    def invoke(self, msgs):
        self.calls.append(msgs)
        if self.error is not None:
            raise self.error
        return type("Resp", (), {"content": self.reply})()
