from typing import Any, Dict, List, Optional

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel, Field

from ..config import settings
from ..core.errors import InvalidAmount, UnsupportedToken
from ..providers.jupiter import (
    JupiterQuoteError,
    JupiterSwapError,
    JupiterUnavailableError,
    get_jupiter_swap_provider,
)
from ..services.tokens import get_swap_token
from ..services.units import (
    format_price_impact,
    format_token_amount,
    from_base_units,
    parse_amount,
    to_base_units,
)


router = APIRouter(prefix="/swap")


class SwapQuoteRequest(BaseModel):
    input_token: str = Field(description="Symbol of the token to sell (SOL, USDC, USDT)")
    output_token: str = Field(description="Symbol of the token to buy")
    amount: str = Field(description="Human readable amount of the input token, e.g. '1.5'")
    slippage_bps: Optional[int] = Field(default=None, ge=0, le=5000, description="Allowed slippage in basis points")


class SwapQuoteResponse(BaseModel):
    input_token: str
    output_token: str
    in_amount: str
    out_amount: str
    out_amount_display: str
    min_out_amount: str
    price_impact: str
    route_hops: int
    slippage_bps: int
    quote_response: Dict[str, Any]


class SwapTransactionRequest(BaseModel):
    quote_response: Dict[str, Any] = Field(description="Raw quote payload returned by /swap/quote")
    user_public_key: str = Field(min_length=32, max_length=44, description="Base58 wallet address")
    wrap_and_unwrap_sol: bool = True


class SwapTransactionResponse(BaseModel):
    swap_transaction: str
    last_valid_block_height: int
    priority_fee_lamports: int
    compute_unit_limit: int
    warnings: List[str] = []


@router.post("/quote")
async def post_swap_quote(req: SwapQuoteRequest) -> SwapQuoteResponse:
    try:
        token_in = get_swap_token(req.input_token)
        token_out = get_swap_token(req.output_token)
        value = parse_amount(req.amount)
        if value is None or value <= 0:
            raise InvalidAmount("Enter an amount greater than zero")
        amount = to_base_units(value, token_in.decimals)
        if amount <= 0:
            raise InvalidAmount("Amount is below the smallest unit of the token")
    except (InvalidAmount, UnsupportedToken) as e:
        raise HTTPException(status_code=400, detail=e.to_dict())

    if token_in == token_out:
        raise HTTPException(status_code=400, detail={"code": "UnsupportedToken", "message": "Pick two different tokens"})

    slippage = req.slippage_bps if req.slippage_bps is not None else settings.swap_slippage_bps
    try:
        quote = await get_jupiter_swap_provider().get_swap_quote(
            input_mint=token_in.mint,
            output_mint=token_out.mint,
            amount=amount,
            slippage_bps=slippage,
        )
    except JupiterQuoteError as e:
        raise HTTPException(status_code=502, detail={"code": "QuoteUnavailable", "message": str(e)})
    except JupiterUnavailableError as e:
        raise HTTPException(status_code=502, detail={"code": "QuoteUnavailable", "message": f"try again ({e})"})

    out_amount = from_base_units(quote.out_amount, token_out.decimals)
    return SwapQuoteResponse(
        input_token=token_in.symbol,
        output_token=token_out.symbol,
        in_amount=from_base_units(quote.in_amount, token_in.decimals),
        out_amount=out_amount,
        out_amount_display=format_token_amount(out_amount, 6),
        min_out_amount=from_base_units(quote.other_amount_threshold, token_out.decimals),
        price_impact=format_price_impact(quote.price_impact_pct),
        route_hops=quote.route_hop_count,
        slippage_bps=quote.slippage_bps,
        quote_response=quote.quote_response or {},
    )


@router.post("/transaction")
async def post_swap_transaction(req: SwapTransactionRequest) -> SwapTransactionResponse:
    """Build an unsigned transaction; signing happens in the user's wallet."""

    if not req.quote_response:
        raise HTTPException(status_code=400, detail={"code": "SwapRejected", "message": "Quote response required"})

    try:
        result = await get_jupiter_swap_provider().build_swap_transaction_from_response(
            req.quote_response,
            req.user_public_key,
            wrap_and_unwrap_sol=req.wrap_and_unwrap_sol,
        )
    except JupiterSwapError as e:
        raise HTTPException(status_code=502, detail={"code": "SwapFailed", "message": str(e)})

    warnings = []
    if result.priority_fee_lamports > 1_000_000:
        warnings.append("High priority fee")

    return SwapTransactionResponse(
        swap_transaction=result.swap_transaction,
        last_valid_block_height=result.last_valid_block_height,
        priority_fee_lamports=result.priority_fee_lamports,
        compute_unit_limit=result.compute_unit_limit,
        warnings=warnings,
    )
