"""
Code Review Engine

Audit storage and import, coverage resolution, priority scoring and
reporting.
"""

from .audits import (
    AuditConflictError,
    AuditValidationError,
    check_group_auditable,
    create_audit,
    delete_audit,
    update_audit,
)
from .coverage import (
    PromotionCoverage,
    TrackCoverage,
    TrackGroup,
    calculate_progress,
    collect_track_groups,
    compute_track_coverage,
    resolve_pending_groups,
    resolve_promotion_coverage,
)
from .dropouts import DatabaseDropoutRegistry, DropoutRegistry, get_dropout_registry
from .imports import ImportResult, import_audits, read_audit_csv
from .priority import (
    PendingGroupPriority,
    PriorityEvaluation,
    ScoringRules,
    calculate_priority_score,
    evaluate_pending_priorities,
    get_student_audit_history,
    score_to_priority,
)
from .reporting import (
    CodeReviewReport,
    PendingReport,
    PromotionNotFoundError,
    StudentNotFoundError,
    StudentPendingAudit,
    UrgentReview,
    build_code_review_report,
    build_pending_report,
    get_student_pending_audits,
    get_urgent_code_reviews,
)

__all__ = [
    "AuditConflictError",
    "AuditValidationError",
    "check_group_auditable",
    "create_audit",
    "delete_audit",
    "update_audit",
    "PromotionCoverage",
    "TrackCoverage",
    "TrackGroup",
    "calculate_progress",
    "collect_track_groups",
    "compute_track_coverage",
    "resolve_pending_groups",
    "resolve_promotion_coverage",
    "DatabaseDropoutRegistry",
    "DropoutRegistry",
    "get_dropout_registry",
    "ImportResult",
    "import_audits",
    "read_audit_csv",
    "PendingGroupPriority",
    "PriorityEvaluation",
    "ScoringRules",
    "calculate_priority_score",
    "evaluate_pending_priorities",
    "get_student_audit_history",
    "score_to_priority",
    "CodeReviewReport",
    "PendingReport",
    "PromotionNotFoundError",
    "build_code_review_report",
    "build_pending_report",
    "StudentNotFoundError",
    "StudentPendingAudit",
    "UrgentReview",
    "get_student_pending_audits",
    "get_urgent_code_reviews",
]
