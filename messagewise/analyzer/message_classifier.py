"""
Rule-based message classifier.

Assigns a billing category, a confidence score and a short rationale to an
outbound or inbound message using an ordered rule cascade: the first rule
whose predicate matches decides the outcome.
"""

import logging
import re
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Sequence

from messagewise.keywords import CLASSIFICATION_KEYWORDS, KEYWORD_WEIGHTS
from messagewise.models import ClassificationResult
from messagewise.pricing import Direction, MessageCategory, PricingConfig

logger = logging.getLogger(__name__)


OTP_PATTERNS = (
    re.compile(r"\b\d{4,8}\b.*?(code|kode|otp|verification|verifikasi)", re.IGNORECASE),
    re.compile(r"(code|kode|otp|verification|verifikasi).*?\b\d{4,8}\b", re.IGNORECASE),
    re.compile(r"your.*?code.*?is", re.IGNORECASE),
    re.compile(r"kode.*?anda", re.IGNORECASE),
)

MARKETING_PATTERNS = (
    re.compile(r"\d+%\s*(off|diskon|discount)", re.IGNORECASE),
    re.compile(r"(flash|super|mega)\s*sale", re.IGNORECASE),
    re.compile(r"limited\s*(time|offer|stock)", re.IGNORECASE),
    re.compile(r"buy\s*\d+\s*get\s*\d+", re.IGNORECASE),
    re.compile(r"free\s*shipping", re.IGNORECASE),
    re.compile(r"special.*?offer", re.IGNORECASE),
    re.compile(r"exclusive.*?deal", re.IGNORECASE),
)

UTILITY_PATTERNS = (
    re.compile(r"order\s*#?\s*\w+", re.IGNORECASE),
    re.compile(r"invoice\s*#?\s*\w+", re.IGNORECASE),
    re.compile(r"receipt\s*#?\s*\w+", re.IGNORECASE),
    re.compile(r"tracking\s*#?\s*\w+", re.IGNORECASE),
    re.compile(r"booking\s*(id|number|confirmation)", re.IGNORECASE),
    re.compile(r"payment\s*(successful|received|confirmed)", re.IGNORECASE),
    re.compile(r"shipment\s*(update|status)", re.IGNORECASE),
    re.compile(r"delivery\s*(scheduled|completed)", re.IGNORECASE),
)

CATEGORY_DISPLAY_NAMES = {
    MessageCategory.AUTHENTICATION: "Authentication",
    MessageCategory.MARKETING: "Marketing",
    MessageCategory.UTILITY: "Utility",
    MessageCategory.SERVICE: "Service",
}


@dataclass(frozen=True)
class ClassificationRule:
    """One step of the cascade: a predicate and the result it produces."""

    name: str
    predicate: Callable[[Any, str], bool]
    outcome: Callable[[Any, str], ClassificationResult]


class MessageClassifier:
    """
    Classifies messages into billing categories.

    The cascade order is:
        inbound -> template category -> authentication -> free-window reply
        -> marketing -> utility -> service -> default SERVICE
    """

    TEMPLATE_CONFIDENCE = 0.98
    AUTHENTICATION_CONFIDENCE = 0.95
    FREE_WINDOW_CONFIDENCE = 0.9
    DEFAULT_CONFIDENCE = 0.5
    MIN_KEYWORD_MATCHES = 2

    def __init__(
        self,
        keywords: Optional[Mapping[MessageCategory, Sequence[str]]] = None,
        keyword_weights: Optional[Mapping[MessageCategory, float]] = None,
        pricing: Optional[PricingConfig] = None,
    ):
        self.keywords = {
            category: tuple(k.lower() for k in words)
            for category, words in (keywords or CLASSIFICATION_KEYWORDS).items()
        }
        self.keyword_weights = dict(keyword_weights or KEYWORD_WEIGHTS)
        self.pricing = pricing or PricingConfig.default()
        self.rules: List[ClassificationRule] = self._build_rules()

    def _build_rules(self) -> List[ClassificationRule]:
        return [
            ClassificationRule(
                "inbound",
                lambda msg, _: self._is_inbound(msg),
                lambda msg, _: ClassificationResult(
                    category=MessageCategory.SERVICE,
                    confidence=1.0,
                    reasoning="Inbound messages are free and categorized as SERVICE",
                ),
            ),
            ClassificationRule(
                "template_category",
                lambda msg, _: self._template_category(msg) is not None,
                self._classify_by_template_category,
            ),
            ClassificationRule(
                "authentication",
                lambda _, content: self._is_authentication(content),
                lambda msg, content: ClassificationResult(
                    category=MessageCategory.AUTHENTICATION,
                    confidence=self.AUTHENTICATION_CONFIDENCE,
                    reasoning="Contains OTP/verification keywords or patterns",
                ),
            ),
            ClassificationRule(
                "free_window_reply",
                lambda msg, _: self._is_free_window_reply(msg),
                self._classify_free_window_reply,
            ),
            ClassificationRule(
                "marketing",
                lambda _, content: self._is_marketing(content),
                lambda _, content: ClassificationResult(
                    category=MessageCategory.MARKETING,
                    confidence=self._keyword_confidence(content, MessageCategory.MARKETING),
                    reasoning="Contains promotional/marketing keywords or patterns",
                ),
            ),
            ClassificationRule(
                "utility",
                lambda _, content: self._is_utility(content),
                lambda _, content: ClassificationResult(
                    category=MessageCategory.UTILITY,
                    confidence=self._keyword_confidence(content, MessageCategory.UTILITY),
                    reasoning="Contains transactional/utility keywords",
                ),
            ),
            ClassificationRule(
                "service",
                lambda _, content: self._has_keywords(content, MessageCategory.SERVICE),
                lambda _, content: ClassificationResult(
                    category=MessageCategory.SERVICE,
                    confidence=self._keyword_confidence(content, MessageCategory.SERVICE),
                    reasoning="Contains customer service keywords",
                ),
            ),
        ]

    def classify(self, message: Any) -> ClassificationResult:
        """
        Classify one message.

        Args:
            message: ClassificationInput, Message or mapping with direction,
                content, template metadata and conversation context

        Returns:
            ClassificationResult of the first matching rule
        """
        start_time = time.perf_counter()
        content = self._message_content(message)

        result = None
        for rule in self.rules:
            if rule.predicate(message, content):
                result = rule.outcome(message, content)
                break

        if result is None:
            result = ClassificationResult(
                category=MessageCategory.SERVICE,
                confidence=self.DEFAULT_CONFIDENCE,
                reasoning="Default classification - no strong pattern match",
            )

        duration_ms = (time.perf_counter() - start_time) * 1000
        logger.debug(
            f"Message classified as {result.category.value} "
            f"({result.confidence:.2f}) in {duration_ms:.2f}ms"
        )
        return result

    def classify_batch(self, messages: Iterable[Any]) -> List[ClassificationResult]:
        return [self.classify(message) for message in messages]

    def _is_inbound(self, message: Any) -> bool:
        direction = _field(message, "direction")
        if direction is not None and Direction.parse(direction) == Direction.INBOUND:
            return True
        return bool(_field(message, "is_inbound", False))

    def _template_category(self, message: Any) -> Optional[MessageCategory]:
        template_category = _field(message, "template_category")
        if not template_category:
            return None
        try:
            return MessageCategory(str(template_category).strip().upper())
        except ValueError:
            return None

    def _classify_by_template_category(self, message: Any, _: str) -> ClassificationResult:
        return ClassificationResult(
            category=self._template_category(message),
            confidence=self.TEMPLATE_CONFIDENCE,
            reasoning=f"Template category: {_field(message, 'template_category')}",
        )

    def _is_authentication(self, content: str) -> bool:
        if any(pattern.search(content) for pattern in OTP_PATTERNS):
            return True
        return self._has_keywords(content, MessageCategory.AUTHENTICATION)

    def _is_free_window_reply(self, message: Any) -> bool:
        age = _field(message, "conversation_age")
        if age is None:
            return False
        return age < self.pricing.service_window_hours and bool(_field(message, "is_reply", False))

    def _classify_free_window_reply(self, _: Any, content: str) -> ClassificationResult:
        keyword_result = self.classify_by_keywords(content)
        return ClassificationResult(
            category=keyword_result.category,
            confidence=self.FREE_WINDOW_CONFIDENCE,
            reasoning=(
                f"Within {self.pricing.service_window_hours}-hour free service window. "
                f"Category: {keyword_result.category.value}"
            ),
        )

    def _is_marketing(self, content: str) -> bool:
        if self._has_keywords(content, MessageCategory.MARKETING):
            return True
        return any(pattern.search(content) for pattern in MARKETING_PATTERNS)

    def _is_utility(self, content: str) -> bool:
        if self._has_keywords(content, MessageCategory.UTILITY):
            return True
        return any(pattern.search(content) for pattern in UTILITY_PATTERNS)

    def _count_keywords(self, content: str, category: MessageCategory) -> int:
        return sum(1 for keyword in self.keywords.get(category, ()) if keyword in content)

    def _has_keywords(self, content: str, category: MessageCategory) -> bool:
        return self._count_keywords(content, category) >= self.MIN_KEYWORD_MATCHES

    def _keyword_confidence(self, content: str, category: MessageCategory) -> float:
        """0.7 base plus 0.05 per keyword hit, bonus capped at 0.25, total at 0.95."""
        matches = self._count_keywords(content, category)
        match_bonus = min(matches * 0.05, 0.25)
        return min(0.7 + match_bonus, 0.95)

    def classify_by_keywords(self, content: str) -> ClassificationResult:
        """Weighted keyword vote across all categories."""
        content = content.lower()
        scores: Dict[MessageCategory, float] = {}
        for category in MessageCategory:
            weight = self.keyword_weights.get(category, 1.0)
            scores[category] = self._count_keywords(content, category) * weight

        best_category = MessageCategory.SERVICE
        best_score = 0.0
        for category, score in scores.items():
            if score > best_score:
                best_score = score
                best_category = category

        total_score = sum(scores.values())
        confidence = min(best_score / total_score + 0.3, 0.9) if total_score > 0 else 0.5

        return ClassificationResult(
            category=best_category,
            confidence=confidence,
            reasoning=f"Keyword analysis: {best_category.value} scored highest",
        )

    @staticmethod
    def _message_content(message: Any) -> str:
        parts = [
            part
            for part in (_field(message, "content"), _field(message, "template_name"))
            if part
        ]
        return " ".join(str(part) for part in parts).lower()

    @staticmethod
    def get_category_cost(
        category: MessageCategory,
        country: str = "ID",
        pricing: Optional[PricingConfig] = None,
    ) -> float:
        return (pricing or PricingConfig.default()).rate(category, country)

    @staticmethod
    def get_category_display_name(category: MessageCategory) -> str:
        return CATEGORY_DISPLAY_NAMES.get(category, str(getattr(category, "value", category)))


def _field(message: Any, name: str, default: Any = None) -> Any:
    if isinstance(message, Mapping):
        return message.get(name, default)
    return getattr(message, name, default)
