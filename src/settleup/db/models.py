from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterable, Mapping, Optional


class SplitType(str, Enum):
    EQUAL = "equal"
    EXACT = "exact"
    PERCENTAGE = "percentage"
    PROPORTIONAL = "proportional"


def _split_type(value: Any) -> SplitType | str:
    # неизвестный тип из чужого документа сохраняем как есть
    try:
        return SplitType(value)
    except ValueError:
        return str(value)


@dataclass(frozen=True, slots=True)
class Member:
    id: str
    name: str
    email: str

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "name": self.name, "email": self.email}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Member:
        return cls(id=str(data["id"]), name=data.get("name", ""), email=data.get("email", ""))


@dataclass(frozen=True, slots=True)
class SplitDetail:
    member_id: str
    value: float

    def to_dict(self) -> dict[str, Any]:
        return {"memberId": self.member_id, "value": self.value}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> SplitDetail:
        return cls(member_id=str(data["memberId"]), value=float(data.get("value", 0)))


@dataclass(frozen=True, slots=True)
class Expense:
    id: str
    description: str
    amount: float
    paid_by_id: str
    split_type: SplitType | str
    split_details: tuple[SplitDetail, ...]
    created_at: int

    def to_dict(self) -> dict[str, Any]:
        split_type = self.split_type.value if isinstance(self.split_type, SplitType) else self.split_type
        return {
            "id": self.id,
            "description": self.description,
            "amount": self.amount,
            "paidById": self.paid_by_id,
            "splitType": split_type,
            "splitDetails": [detail.to_dict() for detail in self.split_details],
            "createdAt": self.created_at,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Expense:
        return cls(
            id=str(data["id"]),
            description=data.get("description", ""),
            amount=float(data["amount"]),
            paid_by_id=str(data["paidById"]),
            split_type=_split_type(data.get("splitType", SplitType.EQUAL.value)),
            split_details=tuple(SplitDetail.from_dict(d) for d in data.get("splitDetails") or ()),
            created_at=int(data.get("createdAt", 0)),
        )


@dataclass(frozen=True, slots=True)
class RecordedPayment:
    id: str
    from_member_id: str
    to_member_id: str
    amount: float
    created_at: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "fromMemberId": self.from_member_id,
            "toMemberId": self.to_member_id,
            "amount": self.amount,
            "createdAt": self.created_at,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> RecordedPayment:
        return cls(
            id=str(data["id"]),
            from_member_id=str(data["fromMemberId"]),
            to_member_id=str(data["toMemberId"]),
            amount=float(data["amount"]),
            created_at=int(data.get("createdAt", 0)),
        )


@dataclass(frozen=True, slots=True)
class Group:
    id: str
    name: str
    members: tuple[Member, ...] = ()
    expenses: tuple[Expense, ...] = ()
    payments: tuple[RecordedPayment, ...] = ()
    created_at: int = 0

    def member(self, member_id: str) -> Optional[Member]:
        for member in self.members:
            if member.id == member_id:
                return member
        return None

    def expense(self, expense_id: str) -> Optional[Expense]:
        for expense in self.expenses:
            if expense.id == expense_id:
                return expense
        return None

    def member_by_email(self, email: str) -> Optional[Member]:
        needle = email.strip().lower()
        for member in self.members:
            if member.email.strip().lower() == needle:
                return member
        return None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "members": [m.to_dict() for m in self.members],
            "expenses": [e.to_dict() for e in self.expenses],
            "payments": [p.to_dict() for p in self.payments],
            "createdAt": self.created_at,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Group:
        return cls(
            id=str(data["id"]),
            name=data.get("name", ""),
            members=tuple(Member.from_dict(m) for m in data.get("members") or ()),
            expenses=tuple(Expense.from_dict(e) for e in data.get("expenses") or ()),
            # старые документы сохранялись без payments
            payments=tuple(RecordedPayment.from_dict(p) for p in data.get("payments") or ()),
            created_at=int(data.get("createdAt", 0)),
        )


@dataclass(frozen=True, slots=True)
class Settlement:
    from_member: Member
    to_member: Member
    amount: float


@dataclass(frozen=True, slots=True)
class AppState:
    groups: tuple[Group, ...] = field(default_factory=tuple)

    def group(self, group_id: str) -> Optional[Group]:
        for group in self.groups:
            if group.id == group_id:
                return group
        return None


def groups_to_json(groups: Iterable[Group]) -> list[dict[str, Any]]:
    return [group.to_dict() for group in groups]


def groups_from_json(data: Iterable[Mapping[str, Any]] | None) -> list[Group]:
    if not data:
        return []
    return [Group.from_dict(item) for item in data]
