"""Ошибки SettleUp.

Чистое ядро (распределение долей, балансы, план расчётов, журнал мутаций)
исключений не бросает. Здесь только отказы валидации, которые показываются
пользователю до изменения состояния, и ошибки обращения к сессии.
"""

from __future__ import annotations


class SettleUpError(Exception):
    pass


class ValidationError(SettleUpError, ValueError):
    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class MemberNotFoundError(ValidationError):
    def __init__(self, email: str) -> None:
        self.email = email
        super().__init__(f"Пользователь с email {email} не зарегистрирован.")


class DuplicateMemberError(ValidationError):
    def __init__(self, email: str) -> None:
        self.email = email
        super().__init__(f"Участник с email {email} уже есть в группе.")


class GroupNotFoundError(SettleUpError, LookupError):
    def __init__(self, group_id: str) -> None:
        self.group_id = group_id
        super().__init__(f"Группа {group_id} не найдена.")


class NoSessionError(SettleUpError):
    pass
