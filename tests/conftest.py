"""Shared fixtures for springconf tests."""

from __future__ import annotations

from typing import Any, Callable, Dict, List, Optional, Sequence, Union

import httpx
import pytest

SCENARIO_A_SOURCES = [
    {
        "name": "file:config/basic-app.yml",
        "source": {
            "database.host": "localhost",
            "database.port": 5432,
            "server.port": 8080,
        },
    },
    {
        "name": "file:config/basic-app-development.yml",
        "source": {
            "database.host": "dev-db.example.com",
            "logging.level": "DEBUG",
        },
    },
]


def _config_body(
    sources: Sequence[Dict[str, Any]],
    name: str = "basic-app",
    profiles: Optional[List[str]] = None,
    label: Optional[str] = None,
    version: Optional[str] = None,
) -> Dict[str, Any]:
    return {
        "name": name,
        "profiles": profiles if profiles is not None else ["development"],
        "label": label,
        "version": version,
        "state": None,
        "propertySources": list(sources),
    }


Step = Union[httpx.Response, Exception, Callable[[httpx.Request], httpx.Response]]


class ScriptedServer:
    """Replays a fixed sequence of responses or exceptions, one per request.

    The last step repeats once the script runs out.
    """

    def __init__(self, steps: Sequence[Step]):
        self.steps = list(steps)
        self.requests: List[httpx.Request] = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        step = self.steps[min(len(self.requests), len(self.steps)) - 1]
        if isinstance(step, Exception):
            raise step
        if isinstance(step, httpx.Response):
            return httpx.Response(
                step.status_code, headers=step.headers, content=step.content
            )
        return step(request)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    @property
    def calls(self) -> int:
        return len(self.requests)


class RecordingSleep:
    """Awaitable sleep stand-in that records requested delays."""

    def __init__(self):
        self.delays: List[float] = []

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


@pytest.fixture
def config_body():
    """Builder for config server response bodies."""
    return _config_body


@pytest.fixture
def scenario_a_sources():
    return [dict(fragment) for fragment in SCENARIO_A_SOURCES]


@pytest.fixture
def ok_response():
    return httpx.Response(200, json=_config_body(SCENARIO_A_SOURCES))


@pytest.fixture
def scripted():
    """Factory for ScriptedServer instances."""
    return ScriptedServer


@pytest.fixture
def recording_sleep():
    return RecordingSleep()
