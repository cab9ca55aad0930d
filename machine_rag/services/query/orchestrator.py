"""Query orchestration: route one conversation turn to live data or RAG.

Routing order for the last user turn, first match wins:

  1. CHART   -- the user asks for a chart/trend of an asset.  Readings are
                fetched from the time-series store and summarised locally;
                no completion call is made.
  2. ALERTS  -- the user asks for the alerts of an asset.  Alerts are
                fetched from the alert service and returned as-is.
  3. ANSWER  -- everything else.  Relevant chunks are retrieved from the
                vector store, appended to the system prompt, and the
                completion service answers with the recent history.

Classification and live-data failures degrade to the next step; only a
failing final completion call is raised to the caller.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Callable, Sequence

import structlog

from machine_rag.interfaces.intent_classifier import IIntentClassifier
from machine_rag.interfaces.llm_provider import ILLMProvider
from machine_rag.models.chat import ChatTurn
from machine_rag.models.intent import AlertIntent, ChartIntent
from machine_rag.models.live_data import (
    AlertResponse,
    AnswerResponse,
    ChartResponse,
    QueryResponse,
)
from machine_rag.services.query.live_data import AlertResolver, TimeSeriesResolver, summarize_series
from machine_rag.services.query.retriever import SemanticRetriever
from machine_rag.services.query.time_window import resolve_window
from machine_rag.utils.errors import CompletionServiceError, InvalidQueryError, LLMError, MachineRagError
from machine_rag.utils.logging import get_logger

logger: structlog.BoundLogger = get_logger(__name__)

_ANSWER_TEMPERATURE = 0.2
_ANSWER_MAX_TOKENS = 1500


class QueryOrchestrator:
    """Answers one conversation turn about industrial machines."""

    _SYSTEM_PROMPT = (
        "You are a support assistant for machine operators and maintenance "
        "technicians on the shop floor.\n"
        "- Base your answer on the machine documentation and data given below. "
        "Quote parameter names, menu paths and setpoints exactly as written there.\n"
        "- If the documentation does not cover the question, say so in one "
        "sentence and give general good-practice guidance.\n"
        "- Never suggest bypassing interlocks or guards. Mention emergency stop "
        "and lockout/tagout where relevant.\n"
        "- Keep answers short and practical, use metric units and do not invent "
        "values. When unsure, say that there is not enough data and ask one "
        "focused question.\n"
        "- Mention part numbers, specifications and maintenance intervals only "
        "when they appear in the data."
    )

    def __init__(
        self,
        llm: ILLMProvider,
        classifier: IIntentClassifier,
        retriever: SemanticRetriever,
        series_resolver: TimeSeriesResolver | None = None,
        alert_resolver: AlertResolver | None = None,
        timezone_name: str = "Europe/Berlin",
        history_max_turns: int = 10,
        chart_preview_limit: int = 100,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._llm = llm
        self._classifier = classifier
        self._retriever = retriever
        self._series_resolver = series_resolver
        self._alert_resolver = alert_resolver
        self._timezone_name = timezone_name
        self._history_max_turns = history_max_turns
        self._chart_preview_limit = chart_preview_limit
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    async def handle(
        self,
        messages: list[ChatTurn],
        selected_assets: Sequence[str] = (),
    ) -> QueryResponse:
        """Answer the conversation's latest turn.

        Parameters
        ----------
        messages:
            The conversation so far, oldest first.
        selected_assets:
            Asset or product names the user has selected; named in the
            system prompt.

        Raises
        ------
        InvalidQueryError
            If *messages* is empty.
        CompletionServiceError
            If the final completion call fails.
        """
        if not messages:
            raise InvalidQueryError("At least one message is required")

        last_user = next((m.content for m in reversed(messages) if m.role == "user"), "")

        if last_user:
            chart = await self._try_chart(last_user)
            if chart is not None:
                return chart
            alerts = await self._try_alerts(last_user)
            if alerts is not None:
                return alerts

        return await self._answer(messages, selected_assets)

    # ------------------------------------------------------------------
    # Live data
    # ------------------------------------------------------------------

    async def _try_chart(self, message: str) -> ChartResponse | None:
        if self._series_resolver is None:
            return None
        try:
            intent = await self._classifier.classify_chart(message)
        except MachineRagError as exc:
            logger.warning("chart_classification_failed", error=str(exc))
            return None
        if not isinstance(intent, ChartIntent):
            logger.debug("chart_intent_absent", reason=intent.reason)
            return None

        window = resolve_window(intent.window, self._clock(), self._timezone_name)
        if window is None:
            logger.info("chart_window_unresolved", asset_ref=intent.asset_ref)
            return None

        readings = await self._series_resolver.fetch(intent.asset_ref, intent.metric, window.start, window.end)
        if not readings:
            suffix = f" ({intent.metric})" if intent.metric else ""
            return ChartResponse(
                reply=f"No live data available for {intent.asset_ref}{suffix}.",
                asset_ref=intent.asset_ref,
                metric=intent.metric,
                window=window,
            )

        summary = summarize_series(readings)
        limit = self._chart_preview_limit
        truncated = len(readings) > limit
        lines = [
            f"Live data ({intent.metric or 'all attributes'}) for {intent.asset_ref}",
            f"Points: {len(readings)}",
        ]
        if summary.min is not None and summary.max is not None:
            lines[1] += f", Min: {summary.min:g}, Max: {summary.max:g}"

        logger.info(
            "chart_answered",
            asset_ref=intent.asset_ref,
            metric=intent.metric,
            points=len(readings),
        )
        return ChartResponse(
            reply="Here's the live chart summary:\n\n" + "\n".join(lines),
            asset_ref=intent.asset_ref,
            metric=intent.metric,
            window=window,
            series=readings[:limit],
            series_tail=readings[len(readings) - limit:] if truncated else [],
            truncated=truncated,
            summary=summary,
        )

    async def _try_alerts(self, message: str) -> AlertResponse | None:
        if self._alert_resolver is None:
            return None
        try:
            intent = await self._classifier.classify_alert(message)
        except MachineRagError as exc:
            logger.warning("alert_classification_failed", error=str(exc))
            return None
        if not isinstance(intent, AlertIntent):
            logger.debug("alert_intent_absent", reason=intent.reason)
            return None

        alerts = await self._alert_resolver.fetch(intent.asset_ref)
        if not alerts:
            reply = f"No live data available for {intent.asset_ref}."
        else:
            reply = f"Here are the live alerts for {intent.asset_ref} ({len(alerts)}):\n\n" + "\n".join(
                f"- [{a.severity}] {a.event or 'alert'} ({a.status})" + (f": {a.text}" if a.text else "")
                for a in alerts
            )
        logger.info("alerts_answered", asset_ref=intent.asset_ref, alerts=len(alerts))
        return AlertResponse(reply=reply, asset_ref=intent.asset_ref, alerts=alerts)

    # ------------------------------------------------------------------
    # Retrieval-augmented answer
    # ------------------------------------------------------------------

    async def _answer(self, messages: list[ChatTurn], selected_assets: Sequence[str]) -> AnswerResponse:
        context = await self._retriever.retrieve(messages)
        if context.is_empty:
            logger.warning("answer_without_context", turns=len(messages))

        system_prompt = self._SYSTEM_PROMPT
        if selected_assets:
            system_prompt += "\n- The user has selected these assets or products: " + ", ".join(selected_assets)
        system_prompt += "\n\nContext for the question:\n\n" + context.context_text

        history = messages[-self._history_max_turns:] if self._history_max_turns > 0 else []
        try:
            reply = await self._llm.complete(
                [ChatTurn(role="system", content=system_prompt), *history],
                temperature=_ANSWER_TEMPERATURE,
                max_tokens=_ANSWER_MAX_TOKENS,
            )
        except LLMError as exc:
            logger.error("answer_completion_failed", error=str(exc))
            raise CompletionServiceError(
                message=f"Failed to generate an answer: {exc.message}",
                provider_name=exc.provider_name,
            ) from exc

        logger.info("answer_generated", sources=len(context.sources), history_turns=len(history))
        return AnswerResponse(reply=reply, sources=context.sources)
