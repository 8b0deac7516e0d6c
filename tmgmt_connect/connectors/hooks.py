"""
Translator extension points.

Callbacks are registered on a TranslatorHooks instance that is handed to the
translator at construction time. Alter callbacks may either mutate the
object they receive in place or return a replacement; returning None keeps
the (possibly mutated) original.
"""

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

# (job, payload, query_params) -> payload | None
QueryAlter = Callable[[Dict[str, Any], Dict[str, Any], Dict[str, Any]], Optional[Dict[str, Any]]]
# (form) -> form | None
ConfigurationFormAlter = Callable[[Dict[str, Any]], Optional[Dict[str, Any]]]
# (form, job) -> form | None
CheckoutSettingsFormAlter = Callable[[Dict[str, Any], Dict[str, Any]], Optional[Dict[str, Any]]]
# (has_checkout_settings, job) -> bool | None
HasCheckoutSettingsAlter = Callable[[bool, Dict[str, Any]], Optional[bool]]


@dataclass
class TranslatorHooks:
    """Registered alter callbacks, run in registration order."""
    query_alter: List[QueryAlter] = field(default_factory=list)
    build_configuration_form_alter: List[ConfigurationFormAlter] = field(default_factory=list)
    checkout_settings_form_alter: List[CheckoutSettingsFormAlter] = field(default_factory=list)
    has_checkout_settings_alter: List[HasCheckoutSettingsAlter] = field(default_factory=list)

    def alter_query(self, job: Dict[str, Any], payload: Dict[str, Any],
                    query_params: Dict[str, Any]) -> Dict[str, Any]:
        """Run before the outbound payload is serialized."""
        for callback in self.query_alter:
            result = callback(job, payload, query_params)
            if result is not None:
                payload = result
        return payload

    def alter_configuration_form(self, form: Dict[str, Any]) -> Dict[str, Any]:
        for callback in self.build_configuration_form_alter:
            result = callback(form)
            if result is not None:
                form = result
        return form

    def alter_checkout_settings_form(self, form: Dict[str, Any], job: Dict[str, Any]) -> Dict[str, Any]:
        for callback in self.checkout_settings_form_alter:
            result = callback(form, job)
            if result is not None:
                form = result
        return form

    def alter_has_checkout_settings(self, has_checkout_settings: bool, job: Dict[str, Any]) -> bool:
        for callback in self.has_checkout_settings_alter:
            result = callback(has_checkout_settings, job)
            if result is not None:
                has_checkout_settings = bool(result)
        return has_checkout_settings
