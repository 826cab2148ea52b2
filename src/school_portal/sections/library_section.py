"""
Library section: the book list plus document upload per book.
"""

import logging

import flet as ft

from ..database import BackendError
from ..utils import upload_document
from .screens import create_books_section

logger = logging.getLogger(__name__)


def create_library_section(ctx):
    """Books with an attach-document action backed by storage upload."""
    target = {"book": None, "controller": None}

    async def on_picked(e: ft.FilePickerResultEvent):
        book, controller = target["book"], target["controller"]
        if not e.files or book is None:
            return
        picked = e.files[0]
        if not picked.path:
            ctx.notifier.show("Uploads need the desktop app", "warning")
            return
        try:
            with open(picked.path, "rb") as f:
                content = f.read()
        except OSError as ex:
            ctx.notifier.show(f"Could not read file: {ex}", "error")
            return
        try:
            url = await upload_document(ctx.backend, "books", picked.name, content)
            await ctx.backend.update("books", {"id": book["id"]}, {"document_url": url})
        except BackendError as ex:
            ctx.notifier.show(f"Upload failed: {ex.message}", "error")
            return
        ctx.notifier.show(f"Attached {picked.name} to {book['title']}", "success")
        await controller.load()

    picker = ft.FilePicker(on_result=on_picked)
    ctx.page.overlay.append(picker)

    def attach_action(controller, book):
        def pick(e):
            target["book"] = book
            target["controller"] = controller
            picker.pick_files(dialog_title=f"Attach a document to {book['title']}",
                              allow_multiple=False)

        return [ft.IconButton(
            icon=ft.Icons.UPLOAD_FILE,
            icon_color=ft.Colors.INDIGO_700,
            tooltip="Attach document",
            on_click=pick,
        )]

    return create_books_section(ctx, extra_actions=attach_action)
