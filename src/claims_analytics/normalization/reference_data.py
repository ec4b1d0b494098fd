"""Reference data for claim normalization.

This module is the single home for the alias tables used to read heterogeneous
claim payloads and the status synonym table shared by the normalizer, the query
filters, and the aggregator. Alias tuples are listed in priority order: the
first alias holding a usable value wins.

Dotted aliases (``employee.id``) address nested objects, which appear when the
API serializes an entity relation instead of a flat foreign key.
"""

# Canonical status buckets.
PENDING = "Pending"
APPROVED = "Approved"
REJECTED = "Rejected"
OTHER = "Other"

# Lower-cased, trimmed raw status values mapped to their canonical bucket.
STATUS_SYNONYMS = {
    "pending": PENDING,
    "awaiting": PENDING,
    "open": PENDING,
    "in_progress": PENDING,
    "in progress": PENDING,
    "submitted": PENDING,
    "resolved": APPROVED,
    "approved": APPROVED,
    "closed": APPROVED,
    "completed": APPROVED,
    "settled": APPROVED,
    "rejected": REJECTED,
}

# Claim field aliases.
CLAIM_ID_ALIASES = ("id", "claimId", "claim_id")
STATUS_ALIASES = ("status", "claimStatus", "state", "verdict")
AMOUNT_ALIASES = ("amount", "claimAmount", "claim_amount")
DATE_ALIASES = ("claimDate", "claim_date", "created_at", "createdAt")
EMPLOYEE_ID_ALIASES = ("employeeId", "employee_id", "employee.id")
HR_ID_ALIASES = ("assignedHrId", "assigned_hr_id", "assignedHr.id")
AGENT_ID_ALIASES = ("assignedAgentId", "assigned_agent_id", "agentId", "assignedAgent.id")
POLICY_ID_ALIASES = ("policyId", "policy_id", "policy.id")
REMARKS_ALIASES = ("remarks", "remark", "comments")
DOCUMENTS_ALIASES = ("documents", "documentUrls", "attachments")
TITLE_ALIASES = ("title", "claimType", "type")
FRAUD_FLAG_ALIASES = ("fraud", "fraudFlag", "isFraud", "fraud_flag")
FRAUD_REASON_ALIASES = ("fraudReason", "fraud_reason")

# Reference record display aliases.
REFERENCE_ID_ALIASES = ("id",)
PERSON_NAME_ALIASES = ("name", "fullName", "full_name")
EMPLOYEE_CODE_ALIASES = ("employeeId", "employee_id", "employeeCode")
POLICY_NAME_ALIASES = ("policyName", "policy_name", "name")
POLICY_TYPE_ALIASES = ("policyType", "policy_type", "type")

# Raw string values treated as "true" for boolean flags.
TRUTHY_STRINGS = frozenset({"true", "yes", "y", "1", "flagged"})

# Credential and token fields that must never leave the core in an export.
SENSITIVE_USER_FIELDS = frozenset(
    {
        "password",
        "passwordHash",
        "password_hash",
        "resetToken",
        "reset_token",
        "resetTokenExpiry",
        "reset_token_expiry",
        "token",
        "accessToken",
        "refreshToken",
        "otp",
    }
)

# Display fallbacks for unresolved reference ids.
UNKNOWN_EMPLOYEE = "Unknown"
NOT_AVAILABLE = "N/A"
NOT_ASSIGNED = "Not Assigned"
