"""
Hidrazy - usage limits and cost control for the Razia English tutor.

Check before spending:
    from hidrazy import CostMonitor, SQLiteLedger, RequestType

    monitor = CostMonitor(SQLiteLedger("hidrazy.db"))
    check = monitor.check_limits("user_123", RequestType.PREMIUM_CHAT)
    print(check.decision)  # Allowed() or DeniedWithFallback(...)

Record after spending:
    monitor.record_usage("user_123", "gpt-4o-mini", RequestType.CHAT,
                         input_tokens=350, output_tokens=120)

Show usage:
    report = monitor.get_usage("user_123")
    print(report.monthly.total_cost, report.warnings)

Pick a model and decide on audio:
    from hidrazy import ModelContext, select_model, should_synthesize

    select_model(ModelContext("Can you explain the grammar rule here?")).tier  # "premium"
    should_synthesize("simple_acknowledgment").synthesize                     # False
"""

from hidrazy.config import get_pricing, set_pricing, get_models, set_models, get_limits
from hidrazy.models import UsageLogEntry, UsageLimits, MonthlyStats, DailyStats
from hidrazy.storage import InMemoryLedger, SQLiteLedger, LedgerBackend, LedgerUnavailableError
from hidrazy.usage import UsageAggregator, UsageSnapshot
from hidrazy.policy import (
    RequestType,
    Decision,
    Allowed,
    AllowedDegraded,
    DeniedWithFallback,
    DeniedWithMessage,
    evaluate,
    usage_warnings,
)
from hidrazy.selector import (
    ModelContext,
    ModelSelection,
    SpeechPreferences,
    SpeechDecision,
    select_model,
    should_synthesize,
)
from hidrazy.monitor import CostMonitor, UsageReport, LimitCheck
from hidrazy.speech import (
    SpeechSynthesizer,
    SpeechResult,
    SpeechOutcome,
    SpeechProviderError,
    speak_for_user,
)
from hidrazy.tutor import TutorChat, TutorReply, TutorProviderError
from hidrazy.reporter import UsageReporter, UsageReportError


__version__ = "1.0.0"
__all__ = [
    # Configuration
    "get_pricing",
    "set_pricing",
    "get_models",
    "set_models",
    "get_limits",
    # Ledger
    "UsageLogEntry",
    "UsageLimits",
    "MonthlyStats",
    "DailyStats",
    "InMemoryLedger",
    "SQLiteLedger",
    "LedgerBackend",
    "LedgerUnavailableError",
    "UsageAggregator",
    "UsageSnapshot",
    # Policy
    "RequestType",
    "Decision",
    "Allowed",
    "AllowedDegraded",
    "DeniedWithFallback",
    "DeniedWithMessage",
    "evaluate",
    "usage_warnings",
    # Selection
    "ModelContext",
    "ModelSelection",
    "SpeechPreferences",
    "SpeechDecision",
    "select_model",
    "should_synthesize",
    # Services
    "CostMonitor",
    "UsageReport",
    "LimitCheck",
    "SpeechSynthesizer",
    "SpeechResult",
    "SpeechOutcome",
    "SpeechProviderError",
    "speak_for_user",
    "TutorChat",
    "TutorReply",
    "TutorProviderError",
    "UsageReporter",
    "UsageReportError",
]
