"""RedSalud patient portal constants: URL, default selectors, labels and text markers.

Selectors and labels are the only integration surface with the portal and drift
between releases. Defaults live here; `config/selectors.yaml` overrides them.
"""

import re
from typing import Any, Dict, Final, List, Pattern

PORTAL_URL: Final[str] = "https://agenda.redsalud.cl/patientPortal/identifyPatient"

DEFAULT_DOCUMENT_TYPE: Final[str] = "Carnet de Identidad"
DEFAULT_SERVICE: Final[str] = "Consultas"

# Generic clickable scope used by the text-based locator fallback
TEXT_FALLBACK_SCOPE: Final[str] = "button, [role='button'], a[href], .btn, .button, li, div"

DEFAULT_SELECTORS: Dict[str, Any] = {
    "version": "default",
    "identify": {
        "document_type_trigger": {
            "primary": "[role='button'][aria-haspopup='listbox']",
            "fallbacks": [
                ".MuiSelect-select",
                ".MuiFormControl-root .MuiOutlinedInput-root",
                "div[role='button']",
                "[id*='select']",
            ],
        },
        "document_type_option": {
            "primary": "[role='option']",
            "fallbacks": ["li[role='option']", ".MuiMenuItem-root"],
        },
        "document_number_input": {
            "primary": "input[name='documentNumber']",
            "fallbacks": [
                "#rut",
                "input[placeholder*='RUT']",
                "input[placeholder*='rut']",
                "input[type='text'].MuiInputBase-input",
                ".MuiInputBase-input[type='text']",
            ],
        },
        "continue_button": {"primary": "button", "fallbacks": ["[role='button']"]},
    },
    "service": {
        "cards": {"primary": ".MuiCard-root", "fallbacks": ["[id='cardMainArea']"]},
        "card_label": {"primary": ".MuiTypography-root", "fallbacks": []},
        "card_clickable": {
            "primary": "button.MuiCardActionArea-root",
            "fallbacks": [".MuiCardActionArea-root", "[role='button']", "button", ".MuiCard-root"],
        },
    },
    "search": {
        "specialty_input": {
            "primary": "input#filterService",
            "fallbacks": ["input[name='filterService']"],
        },
        "location_input": {
            "primary": "input#filterLocation",
            "fallbacks": ["input[name='filterLocation']"],
        },
        "suggestion": {
            "primary": "[role='option']",
            "fallbacks": [".MuiAutocomplete-option"],
        },
        "search_button": {"primary": "button", "fallbacks": ["[role='button']"]},
    },
    "availability": {
        "slot_button": {"primary": "button", "fallbacks": []},
        "date_block": {"primary": ".MuiBox-root", "fallbacks": []},
        "date_text": {"primary": "p", "fallbacks": []},
        "slot_card": {
            "primary": ".MuiCard-root",
            "fallbacks": [".MuiPaper-root"],
        },
    },
    "terms": {
        "accept_button": {"primary": "button", "fallbacks": ["[role='button']"]},
    },
    "contact": {
        "phone_input": {
            "primary": "input[name='phoneNumber']",
            "fallbacks": ["input[type='tel']"],
        },
        "email_input": {
            "primary": "input[type='email']",
            "fallbacks": ["input[name='email']"],
        },
        "checkbox": {"primary": "input[type='checkbox']", "fallbacks": []},
        "checkbox_label": {"primary": "label", "fallbacks": [".MuiFormControlLabel-root"]},
    },
    "submit": {
        "reserve_button": {"primary": "button", "fallbacks": ["[role='button']"]},
    },
}


class PortalLabels:
    """Visible labels the stages look for (matched accent/case-insensitively)."""

    DOCUMENT_TRIGGER: Final[str] = "Documento"
    CONTINUE: Final[str] = "Continuar"
    SEARCH: Final[str] = "Buscar"
    ACCEPT_TERMS: Final[str] = "Acepto"
    SUBMIT: Final[str] = "Reservar hora"
    RESERVE_VERB: Final[str] = "reservar"


# Slot buttons read "Reservar 09:15"; aggregate counters read "3 HORAS ESTE DIA".
TIME_PATTERN: Final[Pattern[str]] = re.compile(r"(?<!\d)(\d{1,2}):(\d{2})(?!\d)")
SLOT_EXCLUSION_PATTERNS: Final[List[Pattern[str]]] = [
    re.compile(r"\b\d+\s+horas?\b"),
    re.compile(r"\beste dia\b"),
]

# Normalized markers (lowercase, no accents)
NO_SLOTS_MARKERS: Final[List[str]] = ["sin horas"]

DATE_BOILERPLATE_MARKERS: Final[List[str]] = [
    "sin horas",
    "clinica",
    "centro medico",
    "profesional",
    "dr.",
    "dra.",
    "reservar",
]

# Longest text a date-container label can have; longer blocks are wrappers.
DATE_LABEL_MAX_LENGTH: Final[int] = 60

NO_AVAILABILITY_MARKERS: Final[List[str]] = [
    "no hay horas",
    "sin horas disponibles",
    "no se encontraron",
    "no existen horas",
]

OUTCOME_SUCCESS_KEYWORDS: Final[List[str]] = [
    "reserva exitosa",
    "hora reservada",
    "reserva confirmada",
    "hemos enviado",
    "comprobante",
]

OUTCOME_ERROR_KEYWORDS: Final[List[str]] = [
    "no fue posible",
    "intenta nuevamente",
    "ya tienes una hora",
    "no se pudo",
    "error",
]
