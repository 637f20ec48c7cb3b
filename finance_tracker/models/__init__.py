"""
Data Models Package

This package contains all Pydantic models used in the Finance Tracker.
All data flowing through the system must conform to these schemas.
"""

from finance_tracker.models.finance import (
    Alert,
    AlertPreferences,
    Budget,
    BudgetUsage,
    Debt,
    EmailNotifications,
    Expense,
    ExpenseCategory,
    Goal,
    GoalRecommendation,
    GoalType,
    Income,
    IncomeType,
    MonthData,
    Recommendation,
    UserProfile,
    month_display_name,
    month_id_for,
    next_month_id,
    previous_month_id,
    to_money,
)
from finance_tracker.models.insights import (
    CategoryAmount,
    CategorySuggestion,
    FinancialSnapshot,
    GoalPriority,
    GoalRecommendationSet,
    GoalSnapshot,
    HealthAssessment,
    Insight,
    OptimizationArea,
    ProjectedImpact,
    SpendingOptimization,
)
from finance_tracker.models.validation import (
    ValidationIssue,
    ValidationResult,
)
from finance_tracker.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Finance models
    "Alert",
    "AlertPreferences",
    "Budget",
    "BudgetUsage",
    "Debt",
    "EmailNotifications",
    "Expense",
    "ExpenseCategory",
    "Goal",
    "GoalRecommendation",
    "GoalType",
    "Income",
    "IncomeType",
    "MonthData",
    "Recommendation",
    "UserProfile",
    "month_display_name",
    "month_id_for",
    "next_month_id",
    "previous_month_id",
    "to_money",
    # Insight models
    "CategoryAmount",
    "CategorySuggestion",
    "FinancialSnapshot",
    "GoalPriority",
    "GoalRecommendationSet",
    "GoalSnapshot",
    "HealthAssessment",
    "Insight",
    "OptimizationArea",
    "ProjectedImpact",
    "SpendingOptimization",
    # Validation models
    "ValidationIssue",
    "ValidationResult",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
