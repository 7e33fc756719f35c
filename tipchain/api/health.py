from typing import Any, Dict

from fastapi import APIRouter, Request

from .. import __version__
from ..core.errors import NoSupportedChainError

router = APIRouter()


@router.get("/healthz")
async def health_check(request: Request) -> Dict[str, Any]:
    """Liveness check listing the chains tips can be prepared on"""

    registry = request.app.state.flow.preparer.registry
    chains = []
    for chain_id in registry.supported_chain_ids():
        chain = registry.get_chain(chain_id)
        chains.append({
            "chainId": chain.chain_id,
            "name": chain.name,
            "tokens": list(registry.tokens_on_chain(chain_id)),
        })

    try:
        preferred = registry.preferred_chain().chain_id
    except NoSupportedChainError:
        preferred = None

    return {
        "status": "healthy" if chains else "degraded",
        "version": __version__,
        "preferred_chain_id": preferred,
        "chains": chains,
    }
