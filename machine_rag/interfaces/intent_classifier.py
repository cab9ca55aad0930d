"""Abstract base class for intent classifiers.

Classification decides, per user turn, whether the user wants a live
time-series chart, a live alert listing, or neither.  It is best-effort by
nature, so implementations never raise: failures come back as
:class:`~machine_rag.models.intent.NoIntent` with a non-``"negative"``
reason.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from machine_rag.models.intent import AlertIntent, ChartIntent, Intent, NoIntent


# Concrete implementations: LLMIntentClassifier, RuleBasedIntentClassifier
# Located in: machine_rag/services/query/intent_classifier.py
class IIntentClassifier(ABC):
    """Contract for turning the last user message into an :data:`Intent`."""

    @abstractmethod
    async def classify_chart(self, message: str) -> ChartIntent | NoIntent:
        """Return a :class:`ChartIntent` if *message* clearly asks for a chart."""

    @abstractmethod
    async def classify_alert(self, message: str) -> AlertIntent | NoIntent:
        """Return an :class:`AlertIntent` if *message* clearly asks for alerts."""

    async def classify(self, message: str) -> Intent:
        """Chart first, then alerts; exactly one variant is returned."""
        chart = await self.classify_chart(message)
        if isinstance(chart, ChartIntent):
            return chart
        alert = await self.classify_alert(message)
        if isinstance(alert, AlertIntent):
            return alert
        # Prefer the failure reason over a plain negative when either step failed.
        if chart.reason != "negative":
            return chart
        return alert
