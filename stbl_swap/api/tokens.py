from typing import Any, Dict

from fastapi import APIRouter

from ..services.tokens import SWAP_TOKENS

router = APIRouter()


@router.get("/tokens")
async def list_tokens() -> Dict[str, Any]:
    """Tokens the widget can swap between."""
    return {"tokens": [token.to_dict() for token in SWAP_TOKENS.values()]}
