"""
Validate -> prompt -> gateway -> parse for one symptom question.

Rate limiting happens in the route before this runs; everything here is
per-request and keeps no state.
"""
from __future__ import annotations

import logging
import random
from typing import Any, Optional

from isthisnormal.services.analysis_parser import ParseOutcome, parse_analysis
from isthisnormal.services.gateway import GatewayClient
from isthisnormal.services.prompts import build_messages
from isthisnormal.services.validation import validate_request

logger = logging.getLogger("isthisnormal")


async def analyze(payload: Any, gateway: GatewayClient, rng: Optional[random.Random] = None) -> ParseOutcome:
    """Run the pipeline for a decoded request body.

    Raises ClientValidationError, ConfigurationError, RateLimitError (gateway
    busy) or ProviderUnavailableError; parse problems never escape.
    """
    req = validate_request(payload)

    # never log the symptom text itself
    logger.info({
        "function": "analyze",
        "body_area": req.body_area or "not specified",
        "duration": req.duration or "not specified",
        "age_range": req.age_range or "not specified",
    })

    content = await gateway.generate_chat(build_messages(req))
    outcome = parse_analysis(content, rng=rng)

    logger.info({
        "function": "analyze",
        "outcome": "fallback" if outcome.is_fallback else "parsed",
        "similar_questions": outcome.analysis.similar_questions,
    })
    return outcome


__all__ = ["analyze"]
