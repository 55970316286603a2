"""Bottom status line: model, message counter and request timer."""

from textual.widgets import Static

from tama.core.session import Session


def status_text(session: Session, now: float) -> str:
    model = f"Model: {session.model}"
    if not session.model_loaded:
        model += " (not loaded)"

    store = session.store
    shown = store.current_index + 1 if store.current_index is not None and len(store) else 0
    parts = [model, f"MSG {shown}/{len(store)}"]

    if session.loading_since is not None:
        parts.append(f"⏱  Loading model: {now - session.loading_since:.1f}s")
    elif session.waiting_since is not None:
        parts.append(f"⏱  Waiting for response: {now - session.waiting_since:.1f}s")

    return " • ".join(parts)


class StatusLine(Static):
    def show(self, session: Session) -> None:
        self.update(status_text(session, session.clock()))
