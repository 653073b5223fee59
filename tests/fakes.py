"""Scripted stand-ins for Playwright pages, element handles and the portal.

FakeElement matches a selector when the selector equals its tag or is listed
in its ``selectors`` set; there is no CSS parsing. FakePortal re-renders the
page body as a patient moves through the RedSalud screens.
"""

from functools import partial
from typing import Any, Callable, Dict, Iterator, List, Optional, Sequence, Tuple

from playwright.async_api import Error as PlaywrightError

from src.core.config.settings import TimingSettings
from src.services.booking.element_locator import CLOSEST_JS, CURSOR_JS, FORCE_VALUE_JS

PNG_BYTES = b"\x89PNG\r\n\x1a\nfake-screenshot"


def _resolve(value: Any) -> Any:
    return value() if callable(value) else value


class FakeHandle:
    """JSHandle returned by evaluate_handle()."""

    def __init__(self, element: Optional["FakeElement"]):
        self._element = element

    def as_element(self) -> Optional["FakeElement"]:
        return self._element


class FakeElement:
    """Element handle with just enough behaviour for the locator and the stages."""

    def __init__(
        self,
        tag: str = "div",
        text: str = "",
        selectors: Sequence[str] = (),
        children: Sequence["FakeElement"] = (),
        visible: bool = True,
        enabled: Any = True,
        checked: bool = False,
        value: str = "",
        cursor: Any = "pointer",
        on_click: Optional[Callable[["FakeElement"], None]] = None,
        on_type: Optional[Callable[["FakeElement"], None]] = None,
        click_error: bool = False,
    ):
        self.tag = tag
        self.text = text
        self.selectors = set(selectors)
        self.parent: Optional[FakeElement] = None
        self.children: List[FakeElement] = []
        self.visible = visible
        self.enabled = enabled
        self.checked = checked
        self.value = value
        self.cursor = cursor
        self.on_click = on_click
        self.on_type = on_type
        self.click_error = click_error
        self.events: List[str] = []
        self._selected = False
        for child in children:
            self.append(child)

    def __repr__(self) -> str:
        return f"<FakeElement {self.tag} {self.text!r}>"

    # ---------------------------------------------------------------- tree

    def append(self, child: "FakeElement") -> "FakeElement":
        child.parent = self
        self.children.append(child)
        return child

    def set_children(self, children: Sequence["FakeElement"]) -> None:
        self.children = []
        for child in children:
            self.append(child)

    def matches_selector(self, selector: str) -> bool:
        return selector == self.tag or selector in self.selectors

    def descendants(self) -> Iterator["FakeElement"]:
        for child in self.children:
            yield child
            yield from child.descendants()

    def shown(self) -> bool:
        node: Optional[FakeElement] = self
        while node is not None:
            if not node.visible:
                return False
            node = node.parent
        return True

    def text_content(self) -> str:
        if not self.shown():
            return ""
        parts = [self.text] if self.text else []
        for child in self.children:
            child_text = child.text_content()
            if child_text:
                parts.append(child_text)
        return "\n".join(parts)

    @property
    def clicked(self) -> bool:
        return any(event in ("click", "dispatch:click") for event in self.events)

    # ---------------------------------------------------------------- handle API

    async def query_selector_all(self, selector: str) -> List["FakeElement"]:
        return [el for el in self.descendants() if el.matches_selector(selector)]

    async def is_visible(self) -> bool:
        return self.shown()

    async def is_enabled(self) -> bool:
        return bool(_resolve(self.enabled))

    async def is_checked(self) -> bool:
        return self.checked

    async def inner_text(self) -> str:
        return self.text_content()

    async def input_value(self) -> str:
        return self.value

    def _fire(self) -> None:
        if not _resolve(self.enabled):
            return
        if self.tag == "input" and "input[type='checkbox']" in self.selectors:
            self.checked = not self.checked
        if self.on_click is not None:
            self.on_click(self)

    async def click(self, timeout: Optional[float] = None) -> None:
        self.events.append("click")
        if self.click_error or not _resolve(self.enabled):
            raise PlaywrightError("Element is not clickable")
        self._fire()

    async def dispatch_event(self, type: str, event_init: Any = None) -> None:
        self.events.append(f"dispatch:{type}")
        if type == "click":
            self._fire()

    async def press(self, key: str) -> None:
        self.events.append(f"press:{key}")
        if key == "Control+A":
            self._selected = True
        elif key == "Backspace" and self._selected:
            self.value = ""
            self._selected = False

    async def type(self, text: str, delay: float = 0) -> None:
        self.events.append(f"type:{text}")
        self.value += text
        if self.on_type is not None:
            self.on_type(self)

    async def evaluate(self, expression: str, arg: Any = None) -> Any:
        if expression == CURSOR_JS:
            return _resolve(self.cursor)
        if expression == FORCE_VALUE_JS:
            self.events.append("force_value")
            self.value = arg
            return None
        raise PlaywrightError(f"Unsupported expression: {expression[:40]}")

    async def evaluate_handle(self, expression: str, arg: Any = None) -> FakeHandle:
        if expression != CLOSEST_JS:
            raise PlaywrightError(f"Unsupported expression: {expression[:40]}")
        node: Optional[FakeElement] = self
        while node is not None:
            if node.matches_selector(arg):
                return FakeHandle(node)
            node = node.parent
        return FakeHandle(None)


def button(text: str, **kwargs: Any) -> FakeElement:
    return FakeElement("button", text=text, **kwargs)


def para(text: str) -> FakeElement:
    return FakeElement("p", text=text)


class FakePage:
    """Page whose DOM is a FakeElement tree under ``body``."""

    def __init__(
        self,
        children: Sequence[FakeElement] = (),
        url: str = "https://agenda.redsalud.cl/patientPortal/identifyPatient",
    ):
        self.body = FakeElement("body", children=children)
        self.url = url
        self.goto_calls: List[Dict[str, Any]] = []
        self.goto_error: Optional[str] = None
        self.screenshot_error: Optional[str] = None
        self.screenshots = 0

    def show(self, *children: FakeElement) -> None:
        """Replace the rendered screen."""
        self.body.set_children(children)

    async def goto(self, url: str, wait_until: Optional[str] = None, timeout: Any = None):
        self.goto_calls.append({"url": url, "wait_until": wait_until, "timeout": timeout})
        if self.goto_error:
            raise PlaywrightError(self.goto_error)
        self.url = url
        return None

    async def query_selector_all(self, selector: str) -> List[FakeElement]:
        return await self.body.query_selector_all(selector)

    async def inner_text(self, selector: str) -> str:
        if selector != "body":
            raise PlaywrightError(f"Unsupported selector: {selector}")
        return self.body.text_content()

    async def screenshot(self, full_page: bool = True, type: str = "png") -> bytes:
        if self.screenshot_error:
            raise PlaywrightError(self.screenshot_error)
        self.screenshots += 1
        return PNG_BYTES


class FakeBrowser:
    """Async context manager standing in for BrowserManager."""

    def __init__(self, page: Optional[FakePage] = None, fail_on_new_page: bool = False):
        self.page = page or FakePage()
        self.fail_on_new_page = fail_on_new_page
        self.opened = 0
        self.closed = 0

    async def __aenter__(self) -> "FakeBrowser":
        self.opened += 1
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        self.closed += 1

    async def new_page(self) -> FakePage:
        if self.fail_on_new_page:
            raise PlaywrightError("Target page, context or browser has been closed")
        return self.page

    def factory(self, settings: Any) -> "FakeBrowser":
        return self


Slots = List[Tuple[str, List[str]]]


class FakePortal:
    """
    Scripted RedSalud portal.

    Args:
        page: Page to render into (a new one by default)
        dates: Date labels in grid order, each mapped to (doctor, times) cards
        availability: "slots", "none" (portal says no hours) or "never" (grid never renders)
        outcome: "success", "error" or "ambiguous" text after submitting
        show_terms: Whether a terms dialog follows the slot click
        email_drops_last_char: Simulate an input mask that loses the last typed character
        specialties: Catalogue offered as autocomplete suggestions
        locations: Catalogue offered as autocomplete suggestions
    """

    SERVICES = ["Consultas", "Exámenes", "Procedimientos"]
    DOCUMENT_TYPES = ["Carnet de Identidad", "Pasaporte"]

    def __init__(
        self,
        page: Optional[FakePage] = None,
        dates: Optional[Dict[str, Slots]] = None,
        availability: str = "slots",
        outcome: str = "success",
        show_terms: bool = True,
        email_drops_last_char: bool = False,
        specialties: Sequence[str] = ("Medicina General", "Cardiología", "Dermatología"),
        locations: Sequence[str] = ("Providencia", "Santiago Centro", "Maipú"),
    ):
        self.page = page or FakePage()
        self.dates: Dict[str, Slots] = dates if dates is not None else {
            "Lunes 18 de noviembre": [
                ("Dr. Juan Pérez", ["10:00", "09:15"]),
                ("Dra. Ana Soto", ["09:15", "11:30"]),
            ],
            "Martes 19 de noviembre": [("Dra. Ana Soto", ["08:45"])],
        }
        self.availability = availability
        self.outcome = outcome
        self.show_terms = show_terms
        self.email_drops_last_char = email_drops_last_char
        self.specialties = list(specialties)
        self.locations = list(locations)

        self.screen = "identify"
        self.chosen: Dict[str, Any] = {"document_type": self.DOCUMENT_TYPES[0]}
        self.terms_rejected = False
        self.submitted = False
        self.current_date: Optional[str] = None
        self.render_identify()

    # ---------------------------------------------------------------- identify

    def render_identify(self) -> None:
        self.screen = "identify"
        self.trigger = FakeElement(
            "div",
            text=self.chosen["document_type"],
            selectors={"[role='button'][aria-haspopup='listbox']", ".MuiSelect-select"},
            on_click=self._open_document_types,
        )
        self.document_options = FakeElement(
            "ul",
            visible=False,
            children=[
                FakeElement(
                    "li",
                    text=name,
                    selectors={"[role='option']", "li[role='option']", ".MuiMenuItem-root"},
                    on_click=self._pick_document_type,
                )
                for name in self.DOCUMENT_TYPES
            ],
        )
        self.number_input = FakeElement(
            "input", selectors={"input[name='documentNumber']", "#rut"}, cursor="text"
        )
        self.continue_button = button(
            "Continuar",
            enabled=lambda: bool(self.number_input.value),
            on_click=lambda el: self._after_identify(),
        )
        self.page.show(
            FakeElement("h1", text="Identificación del paciente"),
            self.trigger,
            self.document_options,
            self.number_input,
            self.continue_button,
        )

    def _open_document_types(self, element: FakeElement) -> None:
        self.document_options.visible = True

    def _pick_document_type(self, element: FakeElement) -> None:
        self.chosen["document_type"] = element.text
        self.trigger.text = element.text
        self.document_options.visible = False

    def _after_identify(self) -> None:
        self.chosen["document_number"] = self.number_input.value
        self.render_services()

    # ---------------------------------------------------------------- services

    def render_services(self) -> None:
        self.screen = "service"
        cards = []
        for name in self.SERVICES:
            label = FakeElement("h6", text=name, selectors={".MuiTypography-root"})
            action = FakeElement(
                "button",
                selectors={"button.MuiCardActionArea-root", ".MuiCardActionArea-root"},
                children=[label],
                on_click=partial(self._pick_service, name),
            )
            cards.append(FakeElement("div", selectors={".MuiCard-root"}, children=[action]))
        self.page.show(FakeElement("h1", text="¿Qué necesitas agendar?"), *cards)

    def _pick_service(self, name: str, element: FakeElement) -> None:
        self.chosen["service"] = name
        self.render_search()

    # ---------------------------------------------------------------- search

    def render_search(self) -> None:
        self.screen = "search"
        self.specialty_input = FakeElement(
            "input",
            selectors={"input#filterService", "input[name='filterService']"},
            on_type=partial(self._suggest, self.specialties, "specialty"),
        )
        self.location_input = FakeElement(
            "input",
            selectors={"input#filterLocation", "input[name='filterLocation']"},
            on_type=partial(self._suggest, self.locations, "location"),
        )
        self.suggestions = FakeElement("ul", selectors={"[role='listbox']"})
        self.search_button = button("Buscar", on_click=lambda el: self.search())
        self.page.show(
            self.specialty_input, self.location_input, self.suggestions, self.search_button
        )

    def _suggest(self, catalogue: List[str], field: str, element: FakeElement) -> None:
        typed = element.value.lower()
        offered = [name for name in catalogue if typed and typed[:4] in name.lower()]
        self.suggestions.set_children(
            [
                FakeElement(
                    "li",
                    text=name,
                    selectors={"[role='option']", ".MuiAutocomplete-option"},
                    on_click=partial(self._pick_suggestion, element, field, name),
                )
                for name in offered
            ]
        )

    def _pick_suggestion(
        self, target: FakeElement, field: str, name: str, element: FakeElement
    ) -> None:
        target.value = name
        self.chosen[field] = name
        self.suggestions.set_children([])

    def search(self) -> None:
        """Show the availability screen as the "Buscar" button does."""
        self.chosen.setdefault("specialty", self.specialty_input.value)
        self.screen = "availability"
        if self.availability == "never":
            self.page.show(FakeElement("div", text="Cargando disponibilidad..."))
        elif self.availability == "none":
            self.page.show(
                FakeElement("div", text="No hay horas disponibles para la búsqueda realizada.")
            )
        else:
            self.current_date = next(
                (label for label, cards in self.dates.items() if cards), None
            )
            self.render_grid()

    # ---------------------------------------------------------------- availability

    def render_grid(self) -> None:
        blocks = []
        for label, cards in self.dates.items():
            count = sum(len(times) for _, times in cards)
            children = [para(part) for part in label.split(" | ")]
            if count:
                children.append(button(f"{count} HORAS ESTE DIA"))
            else:
                children.append(para("Sin horas disponibles"))
            blocks.append(
                FakeElement(
                    "div",
                    selectors={".MuiBox-root"},
                    children=children,
                    on_click=partial(self._pick_date, label),
                )
            )

        slot_cards = []
        for doctor, times in self.dates.get(self.current_date, []) if self.current_date else []:
            slot_cards.append(
                FakeElement(
                    "div",
                    selectors={".MuiCard-root"},
                    children=[para(doctor)]
                    + [
                        button(f"Reservar {hhmm}", on_click=partial(self._pick_time, doctor, hhmm))
                        for hhmm in times
                    ],
                )
            )
        self.page.show(*blocks, *slot_cards)

    def _pick_date(self, label: str, element: FakeElement) -> None:
        if self.dates.get(label):
            self.current_date = label
            self.chosen["date"] = label
            self.render_grid()

    def _pick_time(self, doctor: str, hhmm: str, element: FakeElement) -> None:
        self.chosen["time"] = hhmm
        self.chosen["doctor"] = doctor
        self.chosen.setdefault("date_shown", self.current_date)
        if self.show_terms:
            self.render_terms()
        else:
            self.render_contact()

    # ---------------------------------------------------------------- terms

    def render_terms(self) -> None:
        self.screen = "terms"
        self.page.show(
            FakeElement(
                "div",
                selectors={"[role='dialog']"},
                children=[
                    para("Términos y condiciones de la reserva"),
                    button("No acepto", on_click=lambda el: setattr(self, "terms_rejected", True)),
                    button("Acepto", on_click=lambda el: self.render_contact()),
                ],
            )
        )

    # ---------------------------------------------------------------- contact

    def _ready(self) -> bool:
        return bool(
            self.checkbox.checked and self.phone_input.value and self.email_input.value
        )

    def _drop_last_char(self, element: FakeElement) -> None:
        element.value = element.value[:-1]

    def render_contact(self) -> None:
        self.screen = "contact"
        self.phone_input = FakeElement(
            "input", selectors={"input[name='phoneNumber']", "input[type='tel']"}
        )
        self.email_input = FakeElement(
            "input",
            selectors={"input[type='email']", "input[name='email']"},
            on_type=self._drop_last_char if self.email_drops_last_char else None,
        )
        self.checkbox = FakeElement("input", selectors={"input[type='checkbox']"})
        self.checkbox_label = FakeElement(
            "label",
            text="Acepto recibir recordatorios",
            selectors={".MuiFormControlLabel-root"},
            children=[self.checkbox],
            on_click=lambda el: setattr(self.checkbox, "checked", True),
        )
        self.submit_button = button(
            "Reservar hora",
            enabled=self._ready,
            cursor=lambda: "pointer" if self._ready() else "not-allowed",
            on_click=lambda el: self._submit(),
        )
        self.page.show(
            self.phone_input, self.email_input, self.checkbox_label, self.submit_button
        )

    def _submit(self) -> None:
        self.submitted = True
        self.chosen["phone"] = self.phone_input.value
        self.chosen["email"] = self.email_input.value
        self.screen = "result"
        texts = {
            "success": "¡Reserva exitosa! Tu hora reservada fue confirmada.",
            "error": "No fue posible completar tu reserva. Intenta nuevamente.",
            "ambiguous": "Procesando solicitud...",
        }
        self.page.show(FakeElement("div", text=texts[self.outcome]))


class PortalBrowserFactory:
    """browser_factory that opens a fresh scripted portal for every session."""

    def __init__(self, **portal_options: Any):
        self.portal_options = portal_options
        self.portals: List[FakePortal] = []
        self.browsers: List[FakeBrowser] = []

    def __call__(self, settings: Any) -> FakeBrowser:
        portal = FakePortal(**self.portal_options)
        browser = FakeBrowser(portal.page)
        self.portals.append(portal)
        self.browsers.append(browser)
        return browser

    @property
    def last(self) -> FakePortal:
        return self.portals[-1]


def fast_timings(**overrides: Any) -> TimingSettings:
    """Timings with every settle delay zeroed and short bounded waits."""
    values: Dict[str, Any] = {
        name: 0.0 for name in TimingSettings.model_fields if name.endswith("_settle")
    }
    values.update(
        identify_timeout=0.2,
        service_timeout=0.2,
        search_timeout=0.2,
        availability_timeout=0.05,
        suggestion_timeout=0.02,
        search_enabled_timeout=0.05,
        terms_timeout=0.02,
        submit_timeout=0.05,
        outcome_timeout=0.05,
        poll_interval=0.005,
        continue_poll_interval=0.005,
        continue_poll_attempts=3,
        typing_delay_ms=0,
    )
    values.update(overrides)
    return TimingSettings(**values)
