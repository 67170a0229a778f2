from __future__ import annotations

from typing import Optional

from textual.app import ComposeResult
from textual.binding import Binding
from textual.containers import Vertical
from textual.screen import ModalScreen
from textual.widgets import Button, Input, Label

from .errors import InvalidIdentity
from .session import validate_email


class SignInScreen(ModalScreen[Optional[str]]):
    """Ask for the email used as identity. Dismisses with the address, or None."""

    BINDINGS = [
        Binding("escape", "cancel", "Cancel"),
    ]

    def __init__(self, email: str = ""):
        super().__init__()
        self.email = email

    def compose(self) -> ComposeResult:
        with Vertical(id="sign-in-dialog"):
            yield Label("Enter your email to manage alerts and bookmarks", classes="pane-title")
            yield Input(value=self.email, placeholder="you@example.com", id="sign-in-email")
            yield Label("", id="sign-in-error", classes="error-title")
            yield Button("Sign in", id="sign-in-submit", variant="primary")

    def on_mount(self) -> None:
        self.query_one("#sign-in-email", Input).focus()

    def _submit(self) -> None:
        value = self.query_one("#sign-in-email", Input).value
        try:
            email = validate_email(value)
        except InvalidIdentity as e:
            self.query_one("#sign-in-error", Label).update(e.message)
            return
        self.dismiss(email)

    def on_input_submitted(self, event: Input.Submitted) -> None:
        if event.input.id == "sign-in-email":
            self._submit()

    def on_button_pressed(self, event: Button.Pressed) -> None:
        if event.button.id == "sign-in-submit":
            self._submit()

    def action_cancel(self) -> None:
        self.dismiss(None)
