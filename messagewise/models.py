"""
Data model consumed and produced by the cost analytics engine.

All result types are plain dataclasses; ``to_dict()`` turns them into
JSON-serializable structures (enums as their values, datetimes as ISO text)
for reporting and notification layers.
"""

from dataclasses import dataclass, field, fields
from datetime import date, datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Union

from messagewise.pricing import Direction, MessageCategory, VolumeDiscount


def to_plain(value: Any) -> Any:
    """Recursively convert enums, dates and dataclasses into plain data."""
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if hasattr(value, "__dataclass_fields__"):
        return {f.name: to_plain(getattr(value, f.name)) for f in fields(value)}
    if isinstance(value, dict):
        return {to_plain(k): to_plain(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_plain(v) for v in value]
    return value


class SerializableMixin:
    def to_dict(self) -> Dict[str, Any]:
        return to_plain(self)


class Priority(Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class RecommendationCategory(Enum):
    TIMING = "timing"
    CLASSIFICATION = "classification"
    VOLUME = "volume"
    TEMPLATE = "template"
    CONVERSATION = "conversation"


@dataclass
class Message(SerializableMixin):
    """Read-only projection of a persisted message."""

    category: MessageCategory
    direction: Direction
    timestamp: datetime
    is_in_free_window: bool = False
    conversation_id: Optional[str] = None
    id: str = ""
    content: Optional[str] = None
    template_name: Optional[str] = None
    template_category: Optional[str] = None
    cost: float = 0.0


@dataclass
class ClassificationInput(SerializableMixin):
    """What the classifier needs to know about a message."""

    direction: Direction
    content: Optional[str] = None
    template_name: Optional[str] = None
    template_category: Optional[str] = None
    conversation_age: Optional[float] = None  # hours since conversation start
    is_reply: bool = False
    is_inbound: bool = False
    message_type: str = "TEXT"


@dataclass
class ClassificationResult(SerializableMixin):
    category: MessageCategory
    confidence: float
    reasoning: str


@dataclass
class CategoryBreakdown(SerializableMixin):
    category: MessageCategory
    count: int
    cost: float
    avg_cost_per_message: float = 0.0
    percentage: float = 0.0


@dataclass
class CostBreakdown(SerializableMixin):
    total_cost: float
    message_count: int
    free_messages: int
    paid_messages: int
    breakdown: List[CategoryBreakdown]
    currency: str = "USD"

    def for_category(self, category: MessageCategory) -> CategoryBreakdown:
        for item in self.breakdown:
            if item.category == category:
                return item
        return CategoryBreakdown(category=category, count=0, cost=0.0)


@dataclass
class DiscountedCostBreakdown(CostBreakdown):
    """Discounted breakdown that also exposes the undiscounted total."""

    discount_applied: Optional[VolumeDiscount] = None
    original_cost: float = 0.0

    @property
    def discount_amount(self) -> float:
        return max(self.original_cost - self.total_cost, 0.0)


@dataclass
class TrendData(SerializableMixin):
    current: float
    previous: float
    change: float
    change_percentage: float
    trend: str  # "up", "down" or "stable"


@dataclass
class PeriodComparison(SerializableMixin):
    current: CostBreakdown
    previous: CostBreakdown
    cost_trend: TrendData
    message_trend: TrendData


@dataclass
class SavingsOpportunity(SerializableMixin):
    category: str
    description: str
    savings: float


@dataclass
class PotentialSavings(SerializableMixin):
    total_potential_savings: float
    breakdown: List[SavingsOpportunity] = field(default_factory=list)


@dataclass
class MonthlyEstimate(SerializableMixin):
    estimated_monthly_cost: float
    estimated_monthly_messages: int
    projected_savings: float


@dataclass
class Recommendation(SerializableMixin):
    id: str
    title: str
    description: str
    potential_savings: float
    savings_percentage: float
    priority: Priority
    actionable: bool
    steps: List[str]
    category: RecommendationCategory
    implemented: bool = False


@dataclass
class OptimizationAnalysis(SerializableMixin):
    """Cost summary the optimizer scores messages against."""

    total_cost: float
    total_messages: int
    free_messages: int = 0
    paid_messages: int = 0
    breakdown: List[CategoryBreakdown] = field(default_factory=list)

    @classmethod
    def from_cost_breakdown(cls, cost: CostBreakdown) -> "OptimizationAnalysis":
        return cls(
            total_cost=cost.total_cost,
            total_messages=cost.message_count,
            free_messages=cost.free_messages,
            paid_messages=cost.paid_messages,
            breakdown=list(cost.breakdown),
        )


@dataclass
class ConversationMetrics(SerializableMixin):
    avg_messages_per_conversation: float
    free_window_utilization: float
    conversations_started_by_customer: int
    conversations_started_by_business: int


@dataclass
class HistoricalData(SerializableMixin):
    """One day of persisted cost history."""

    date: Union[datetime, date]
    total_cost: float
    total_messages: int
    free_messages: int = 0
    paid_messages: int = 0
    breakdown: List[CategoryBreakdown] = field(default_factory=list)
    actual_savings: float = 0.0

    def for_category(self, category: MessageCategory) -> Optional[CategoryBreakdown]:
        for item in self.breakdown:
            if item.category == category:
                return item
        return None


@dataclass
class PredictionResult(SerializableMixin):
    predicted_monthly_cost: float
    predicted_monthly_messages: int
    predicted_savings: float
    confidence_score: float
    trend: str  # "increasing", "decreasing" or "stable"
    recommendations: List[str]


@dataclass
class SavingsTracking(SerializableMixin):
    period_start: Union[datetime, date]
    period_end: Union[datetime, date]
    potential_savings: float
    actual_savings: float
    implemented_recommendations: List[str]
    savings_rate: float


@dataclass
class RecommendationImpact(SerializableMixin):
    estimated_savings: float
    time_to_impact: str
    confidence: float


@dataclass
class PlanROI(SerializableMixin):
    current_monthly_cost: float
    projected_savings: float
    plan_cost: float
    net_benefit: float
    break_even_days: int
    recommended: bool


@dataclass
class ForecastEntry(SerializableMixin):
    month: str
    predicted_cost: float
    predicted_savings: float
    cumulative_savings: float
