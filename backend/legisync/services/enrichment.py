"""
Bill analysis generation.

Asks the configured LLM for a structured analysis of one bill under a
per-bill lease. The reply must be a single JSON object of fixed shape;
anything else is a hard failure and nothing is written.
"""

import json
import logging
import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

import httpx
from langchain_core.messages import HumanMessage
from openai import APIConnectionError, APITimeoutError, InternalServerError, RateLimitError
from pydantic import BaseModel, ConfigDict, Field, ValidationError
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from legisync.core.exceptions import BillNotFound, ShapeMismatch, TransientFailure
from legisync.integrations.congress.retry import RetryPolicy
from legisync.models.bill import Bill
from legisync.prompts import get_prompt
from legisync.services.locks.manager import LockManager
from legisync.utils.dates import utcnow

logger = logging.getLogger(__name__)

# Model-endpoint errors worth another attempt; auth and other 4xx errors are not
TRANSIENT_LLM_ERRORS = (
    RateLimitError,
    APITimeoutError,
    APIConnectionError,
    InternalServerError,
    httpx.TransportError,
)


class BillAnalysis(BaseModel):
    """Required shape of the model's reply."""

    model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True)

    summary: str = Field(min_length=1)
    key_provisions: List[str] = Field(alias="keyProvisions")
    potential_impact: List[str] = Field(alias="potentialImpact")
    potential_controversy: List[str] = Field(alias="potentialControversy")


@dataclass
class AnalysisResult:
    status: str  # "success" | "locked" | "error"
    analysis: Optional[Dict[str, Any]] = None
    message: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"status": self.status}
        if self.analysis is not None:
            data["analysis"] = self.analysis
        if self.message is not None:
            data["message"] = self.message
        return data


def strip_code_fences(content: str) -> str:
    """Remove markdown code fences around a JSON reply."""
    if "```json" in content:
        content = content.split("```json", 1)[1].split("```", 1)[0]
    elif "```" in content:
        content = content.split("```", 1)[1].split("```", 1)[0]
    return content.strip()


def parse_analysis(content: str) -> BillAnalysis:
    """
    Parse and validate the model's reply.

    Raises:
        ShapeMismatch: If the reply is not JSON or misses a required field
    """
    cleaned = strip_code_fences(content or "")
    try:
        data = json.loads(cleaned)
    except json.JSONDecodeError as e:
        raise ShapeMismatch(f"Failed to parse structured analysis from model response: {e}") from e

    if not isinstance(data, dict):
        raise ShapeMismatch("Model response is not a JSON object")

    try:
        return BillAnalysis.model_validate(data)
    except ValidationError as e:
        fields = ", ".join(".".join(str(p) for p in err["loc"]) for err in e.errors())
        raise ShapeMismatch(f"Model response does not match expected structure: {fields}") from e


class BillAnalysisGenerator:
    """
    Generates and stores the analysis of one bill.

    The per-bill lease (``generate_analysis_{bill_id}``) is released on
    every exit path; lock contention returns "locked" and never queues.
    """

    def __init__(
        self,
        session_maker: async_sessionmaker[AsyncSession],
        lock_manager: LockManager,
        llm_factory: Optional[Callable[[], Any]] = None,
        retry_policy: Optional[RetryPolicy] = None,
        max_chars: int = 200_000,
        clock: Callable[[], datetime] = utcnow,
    ):
        """
        Initialize generator.

        Args:
            session_maker: Async session factory
            lock_manager: LockManager for the per-bill lease
            llm_factory: Returns a chat model with ``ainvoke`` (defaults to get_llm)
            retry_policy: Backoff around the model call
            max_chars: Bill text beyond this length is truncated
            clock: Source of the ``analysis_generated_at`` timestamp
        """
        self.session_maker = session_maker
        self.lock_manager = lock_manager
        self._llm_factory = llm_factory
        self._llm = None
        self.retry_policy = retry_policy or RetryPolicy()
        self.max_chars = max_chars
        self.clock = clock

    @property
    def llm(self):
        if self._llm is None:
            if self._llm_factory is None:
                from legisync.core.llm import get_llm
                self._llm_factory = get_llm
            self._llm = self._llm_factory()
        return self._llm

    async def _load_bill(self, bill_id: uuid.UUID) -> Bill:
        async with self.session_maker() as session:
            bill = (await session.execute(select(Bill).where(Bill.id == bill_id))).scalar_one_or_none()
        if bill is None:
            raise BillNotFound(bill_id)
        return bill

    def build_prompt(self, bill: Bill) -> str:
        """Prompt for ``bill``: full text, else summary, else title."""
        text = bill.original_text or bill.summary or bill.title
        if len(text) > self.max_chars:
            logger.info(f"✂️ Truncating text of {bill.number} from {len(text)} to {self.max_chars} chars")
            text = text[:self.max_chars]
        return get_prompt("bill_analysis").format(title=bill.title, text=text)

    async def _invoke_llm(self, prompt: str) -> str:
        try:
            response = await self.llm.ainvoke([HumanMessage(content=prompt)])
        except TRANSIENT_LLM_ERRORS as e:
            raise TransientFailure(f"LLM call failed: {e}") from e
        content = response.content if hasattr(response, "content") else response
        if not content:
            raise TransientFailure("No analysis was generated by the model")
        return content

    async def _store(self, bill_id: uuid.UUID, analysis: BillAnalysis) -> None:
        async with self.session_maker() as session:
            async with session.begin():
                bill = (await session.execute(select(Bill).where(Bill.id == bill_id))).scalar_one()
                bill.ai_summary = analysis.summary
                bill.key_provisions = analysis.key_provisions
                bill.potential_impact = analysis.potential_impact
                bill.potential_controversy = analysis.potential_controversy
                bill.analysis_generated_at = self.clock()

    async def generate(self, bill_id: uuid.UUID) -> AnalysisResult:
        """
        Generate and persist the analysis of one bill.

        Returns:
            AnalysisResult with status "success", "locked" or "error"

        Raises:
            BillNotFound: If no bill has ``bill_id``
        """
        bill = await self._load_bill(bill_id)

        lock_key = self.lock_manager.key("generate_analysis", bill_id)
        if not await self.lock_manager.acquire(lock_key):
            logger.info(f"🔒 Analysis of {bill.number} already in progress")
            return AnalysisResult(status="locked", message="Analysis generation already in progress")

        try:
            logger.info(f"🤖 Generating analysis for {bill.number}")
            content = await self.retry_policy.call(
                self._invoke_llm,
                self.build_prompt(bill),
                description=f"analysis of {bill.number}",
            )
            analysis = parse_analysis(content)
            await self._store(bill_id, analysis)

            logger.info(
                f"✅ Analysis stored for {bill.number}: {len(analysis.key_provisions)} provisions, "
                f"{len(analysis.potential_impact)} impacts, {len(analysis.potential_controversy)} debate points"
            )
            return AnalysisResult(status="success", analysis=analysis.model_dump(by_alias=True))

        except Exception as e:
            logger.error(f"❌ Analysis of {bill.number} failed: {e}")
            return AnalysisResult(status="error", message=str(e))

        finally:
            await self.lock_manager.release(lock_key)
