"""Interface labels for budget figures in Hebrew and English."""

from __future__ import annotations

from typing import Dict, Mapping, Optional


class Translator:
    """Store translations for short interface strings.

    The two "remaining" figures always get distinct labels so that planning
    balance and cash on hand are never shown under the same name.
    """

    def __init__(self, default_locale: str = "he", *, translations: Optional[Mapping[str, Mapping[str, str]]] = None) -> None:
        self.default_locale = default_locale
        self._translations: Dict[str, Dict[str, str]] = {
            "he": {
                "summary.title": "סיכום תקציב",
                "metrics.total": "תקציב כולל",
                "metrics.allocated": "הוקצה לאירועים",
                "metrics.collected": "נאסף",
                "metrics.spent": "הוצא",
                "metrics.allocation_remaining": "יתרה לתכנון",
                "metrics.cash_remaining": "יתרה בקופה",
                "warning.over_allocated": "ההקצאות חורגות מהתקציב",
                "reminder.greeting": "שלום,",
                "reminder.line": 'תזכורת לתשלום "{title}" - {amount}',
                "reminder.unpaid": "טרם שילמו:",
            },
            "en": {
                "summary.title": "Budget summary",
                "metrics.total": "Total budget",
                "metrics.allocated": "Allocated to events",
                "metrics.collected": "Collected",
                "metrics.spent": "Spent",
                "metrics.allocation_remaining": "Left to allocate",
                "metrics.cash_remaining": "Cash on hand",
                "warning.over_allocated": "Allocations exceed the budget",
                "reminder.greeting": "Hello,",
                "reminder.line": 'Payment reminder for "{title}" - {amount}',
                "reminder.unpaid": "Not yet paid:",
            },
        }
        if translations:
            for locale, mapping in translations.items():
                self._translations.setdefault(locale, {}).update(mapping)

    def set_translation(self, locale: str, key: str, value: str) -> None:
        self._translations.setdefault(locale, {})[key] = value

    def translate(self, key: str, *, locale: Optional[str] = None, **params: object) -> str:
        target_locale = locale or self.default_locale
        language = self._translations.get(target_locale) or self._translations[self.default_locale]
        text = language.get(key, key)
        return text.format(**params) if params else text

    def available_locales(self) -> tuple[str, ...]:
        return tuple(sorted(self._translations))


__all__ = ["Translator"]
