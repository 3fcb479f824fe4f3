"""Agent layer — FastAPI dependency injection."""

from __future__ import annotations

import hmac
from typing import Annotated

from fastapi import Depends, Header, HTTPException, Request, status

from filesfound_trigger.agent.schemas import HEADER_API_TOKEN
from filesfound_trigger.config import Settings


def get_config(request: Request) -> Settings:
    return request.app.state.settings  # type: ignore[no-any-return]


async def verify_api_token(
    settings: Annotated[Settings, Depends(get_config)],
    token: Annotated[str | None, Header(alias=HEADER_API_TOKEN)] = None,
) -> None:
    """Reject the request unless it carries the agent's token.

    Agents started without ``agent.api_token`` accept every caller.
    """
    expected = settings.agent.api_token
    if expected is None:
        return
    if token is None or not hmac.compare_digest(token.encode(), expected.encode()):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=f"Missing or wrong {HEADER_API_TOKEN} header.",
        )


ConfigDep = Annotated[Settings, Depends(get_config)]
AuthDep = Depends(verify_api_token)
