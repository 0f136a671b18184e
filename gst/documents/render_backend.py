"""RenderBackend protocol for HTML-to-PDF conversion.

The backend is an external collaborator; ``services.render_client`` talks to
an HTML-to-PDF HTTP service, tests use an in-process fake.
"""

from typing import Protocol

from gst.documents.templates import TemplateLayout


class RenderSession(Protocol):
    """One rendering session. Must be closed on every exit path."""

    async def render_html(self, html: str, layout: TemplateLayout) -> bytes: ...

    async def close(self) -> None: ...


class RenderBackend(Protocol):
    async def open_session(self) -> RenderSession: ...
