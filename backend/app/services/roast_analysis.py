"""
Roast analysis service — sends resume text to Claude for feedback.

This service:
1. Takes the extracted resume text
2. Sends it with the roast system prompt (from prompts.py)
3. Parses the JSON reply into a RoastResult

Key Anthropic API details:
- Temperature: 0.8 (the roast is supposed to be lively, not reproducible)
- Max tokens: 2048 (the JSON reply is short)
"""

import json
import logging
import re
import time
from dataclasses import dataclass

import anthropic
from pydantic import ValidationError

from app.config import Settings
from app.schemas.roasts import RoastResult
from app.services.prompts import SYSTEM_PROMPT, build_roast_prompt

logger = logging.getLogger(__name__)

_FENCE = re.compile(r"^```(?:json)?\s*(.*?)\s*```$", re.DOTALL)


class RoastAnalysisError(Exception):
    """The model call failed or its reply wasn't a usable roast."""


@dataclass
class AnalysisResult:
    """Structured output from one roast call."""
    result: RoastResult
    input_tokens: int = 0
    output_tokens: int = 0
    processing_time_seconds: int = 0
    model: str = ""


def parse_roast_json(content: str) -> RoastResult:
    """Parse and validate the model's JSON reply.

    Models occasionally wrap JSON in a ```json fence despite being told
    not to; that wrapper is stripped before parsing.
    """
    if not content or not content.strip():
        raise RoastAnalysisError("No content from the AI model")

    text = content.strip()
    fenced = _FENCE.match(text)
    if fenced:
        text = fenced.group(1)

    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise RoastAnalysisError("AI response was not valid JSON") from e

    if not isinstance(data, dict):
        raise RoastAnalysisError("AI response was not a JSON object")

    try:
        return RoastResult.model_validate(data)
    except ValidationError as e:
        raise RoastAnalysisError("AI response did not match the roast format") from e


class RoastAnalysisService:
    """Sends resumes to Claude for roasting.

    Usage:
        service = RoastAnalysisService(settings)
        analysis = service.roast(resume_text)
        print(analysis.result.one_liner)
    """

    def __init__(self, settings: Settings):
        self.api_key = settings.ANTHROPIC_API_KEY
        self.model = settings.ANTHROPIC_MODEL

    def roast(self, resume_text: str) -> AnalysisResult:
        """Roast a resume. BLOCKING — run it via asyncio.to_thread()."""
        if not self.api_key:
            raise RoastAnalysisError("ANTHROPIC_API_KEY is not set")

        start_time = time.time()
        client = anthropic.Anthropic(api_key=self.api_key)
        try:
            message = client.messages.create(
                model=self.model,
                max_tokens=2048,
                temperature=0.8,
                system=SYSTEM_PROMPT,
                messages=[
                    {"role": "user", "content": build_roast_prompt(resume_text)}
                ],
            )
        except anthropic.APIError as e:
            raise RoastAnalysisError(f"AI request failed: {e}") from e

        content = "".join(
            block.text for block in message.content if getattr(block, "type", "") == "text"
        )
        try:
            result = parse_roast_json(content)
        except RoastAnalysisError:
            logger.error("Unusable roast reply from %s: %.200s", self.model, content)
            raise

        processing_time = int(time.time() - start_time)
        logger.info("Roast generated in %ss (%s in / %s out tokens)",
                    processing_time, message.usage.input_tokens, message.usage.output_tokens)

        return AnalysisResult(
            result=result,
            input_tokens=message.usage.input_tokens,
            output_tokens=message.usage.output_tokens,
            processing_time_seconds=processing_time,
            model=self.model,
        )
