from core.services.periods.credit_resolver import PriorPeriodCreditResolver
from core.services.periods.lifecycle import PeriodLifecycleManager

__all__ = ["PeriodLifecycleManager", "PriorPeriodCreditResolver"]
