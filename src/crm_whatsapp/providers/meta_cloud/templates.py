"""
WhatsApp Template Components

Builds the "components" list of a template send from caller parameters.
"""

from typing import Any

from crm_whatsapp.contracts.payloads import TemplateParameters


def _text_parameter(value: str) -> dict[str, Any]:
    return {"type": "text", "text": value}


def build_template_components(
    parameters: TemplateParameters | dict[str, Any] | None,
) -> list[dict[str, Any]]:
    """
    Build template components payload from parameters.

    - header: one header component with a single text parameter
    - body: one body component with a text parameter per entry
    - buttons: one quick-reply button component with a payload parameter per entry

    Args:
        parameters: Template parameters (model or plain dict)

    Returns:
        Components list for API request (empty if there is nothing to fill)
    """
    if parameters is None:
        return []
    if not isinstance(parameters, TemplateParameters):
        parameters = TemplateParameters.model_validate(parameters)

    components: list[dict[str, Any]] = []

    if parameters.header:
        components.append({
            "type": "header",
            "parameters": [_text_parameter(parameters.header)],
        })

    if parameters.body:
        components.append({
            "type": "body",
            "parameters": [_text_parameter(value) for value in parameters.body],
        })

    if parameters.buttons:
        components.append({
            "type": "button",
            "sub_type": "quick_reply",
            "index": "0",
            "parameters": [
                {"type": "payload", "payload": button} for button in parameters.buttons
            ],
        })

    return components
