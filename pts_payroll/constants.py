from __future__ import annotations

import enum
from dataclasses import dataclass
from decimal import Decimal
from types import MappingProxyType
from typing import Mapping


class LeaveUnit(str, enum.Enum):
    BUSINESS_DAYS = "business_days"
    CALENDAR_DAYS = "calendar_days"


class LeaveRuleType(str, enum.Enum):
    CUMULATIVE = "cumulative"
    PER_EVENT = "per_event"


@dataclass(frozen=True, slots=True)
class LeaveRule:
    limit: Decimal | None
    unit: LeaveUnit
    rule_type: LeaveRuleType


@dataclass(frozen=True, slots=True)
class LeaveQuotaDefaults:
    """Quota limits used only when a citizen has no quota row for the fiscal year."""

    sick: Decimal | None = Decimal("60")
    personal: Decimal | None = Decimal("45")
    vacation: Decimal | None = None
    wife_help: Decimal | None = Decimal("15")

    def as_mapping(self) -> Mapping[str, Decimal | None]:
        return MappingProxyType(
            {
                "sick": self.sick,
                "personal": self.personal,
                "vacation": self.vacation,
                "wife_help": self.wife_help,
            }
        )


DEFAULT_LEAVE_QUOTAS = LeaveQuotaDefaults()

# Leave types whose limit a quota row may override, mapped to the quota column.
QUOTA_COLUMN_BY_LEAVE_TYPE: Mapping[str, str] = MappingProxyType(
    {
        "sick": "quota_sick",
        "personal": "quota_personal",
        "vacation": "quota_vacation",
    }
)

LEAVE_RULES: Mapping[str, LeaveRule] = MappingProxyType(
    {
        "sick": LeaveRule(Decimal("60"), LeaveUnit.BUSINESS_DAYS, LeaveRuleType.CUMULATIVE),
        "personal": LeaveRule(Decimal("45"), LeaveUnit.BUSINESS_DAYS, LeaveRuleType.CUMULATIVE),
        "vacation": LeaveRule(None, LeaveUnit.BUSINESS_DAYS, LeaveRuleType.CUMULATIVE),
        "wife_help": LeaveRule(Decimal("15"), LeaveUnit.BUSINESS_DAYS, LeaveRuleType.CUMULATIVE),
        "maternity": LeaveRule(Decimal("90"), LeaveUnit.CALENDAR_DAYS, LeaveRuleType.PER_EVENT),
        "ordain": LeaveRule(Decimal("60"), LeaveUnit.CALENDAR_DAYS, LeaveRuleType.PER_EVENT),
        "military": LeaveRule(Decimal("60"), LeaveUnit.CALENDAR_DAYS, LeaveRuleType.PER_EVENT),
        "education": LeaveRule(Decimal("60"), LeaveUnit.CALENDAR_DAYS, LeaveRuleType.CUMULATIVE),
        "rehab": LeaveRule(Decimal("60"), LeaveUnit.CALENDAR_DAYS, LeaveRuleType.PER_EVENT),
    }
)

# Occupations whose professional license never lapses for payroll purposes.
LIFETIME_LICENSE_KEYWORDS: tuple[str, ...] = (
    "นายแพทย์",
    "ผู้อำนวยการเฉพาะด้าน (แพทย์)",
    "ทันตแพทย์",
    "ผู้อำนวยการเฉพาะด้าน (ทันตแพทย์)",
    "เภสัชกร",
    "ผู้อำนวยการเฉพาะด้าน (เภสัชกรรม)",
    "นักเทคนิคการแพทย์",
    "นักรังสีการแพทย์",
    "นักกายภาพบำบัด",
    "นักกิจกรรมบำบัด",
    "นักอาชีวบำบัด",
    "นักจิตวิทยาคลินิก",
    "นักเทคโนโลยีหัวใจ",
    "นักแก้ไขความผิดปกติ",
    "นักวิชาการศึกษาพิเศษ",
    "พยาบาลวิชาชีพ",
)

DEFAULT_RETRO_LOOKBACK_MONTHS = 6
RETRO_DIFF_THRESHOLD = Decimal("0.01")
MONEY_QUANT = Decimal("0.01")
HALF_DAY = Decimal("0.5")
FULL_DAY = Decimal("1")
