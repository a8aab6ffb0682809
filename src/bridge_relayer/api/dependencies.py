"""FastAPI dependency injection helpers.

Usage in a route::

    @router.get("/{tx_id}")
    async def get_transaction(
        relayer: Annotated[BridgeRelayer, Depends(get_relayer)],
    ) -> ...:
        ...
"""

from __future__ import annotations

from fastapi import Request

from bridge_relayer.engine.client import BridgeRelayer  # noqa: TC001
from bridge_relayer.errors.definitions import ErrRelayerNotInitialized


def get_relayer(request: Request) -> BridgeRelayer:
    """Retrieve the relayer from ``app.state``.

    The relayer is stored on ``app.state.relayer`` during lifespan startup.

    Raises:
        RelayerError: 503 if the relayer is not initialized.
    """
    relayer: BridgeRelayer | None = getattr(request.app.state, "relayer", None)
    if relayer is None or not relayer.is_initialized:
        raise ErrRelayerNotInitialized
    return relayer
