from __future__ import annotations

from fastapi import Request

from codeask.container import AppContainer


def get_container(request: Request) -> AppContainer:
    return request.app.state.container


__all__ = ["get_container"]
