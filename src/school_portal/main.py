"""
Main entry point for the School Portal.

Connects the backend, signs the user in and routes them to the view of their
role.
"""

import logging
import warnings
# Suppress websockets deprecation warnings since they come from third-party dependencies
warnings.filterwarnings("ignore", message="websockets.legacy is deprecated", category=DeprecationWarning)
warnings.filterwarnings("ignore", message="websockets.server.WebSocketServerProtocol is deprecated", category=DeprecationWarning)

import flet as ft

from .config import APP_TITLE, LOG_FORMAT, LOG_LEVEL, TOAST_DURATION_MS
from .database import Backend, BackendError
from .navigation import destinations_for, navigation_rail
from .notifier import Notifier
from .sections.context import SectionContext
from .sections.ui_components import bind_toasts
from .session import Session
from .views import ROLE_VIEWS

logger = logging.getLogger(__name__)


def setup_logging():
    logging.basicConfig(level=getattr(logging, LOG_LEVEL, logging.INFO), format=LOG_FORMAT)


async def main(page: ft.Page):
    """Main application entry point."""
    # ------------------------------------------------------------------
    # Page-level configuration
    # ------------------------------------------------------------------
    page.theme_mode = ft.ThemeMode.SYSTEM
    page.title = APP_TITLE
    page.window.width = 1200
    page.window.height = 800
    page.window.min_width = 800
    page.window.min_height = 600
    page.padding = 0

    page.theme = ft.Theme(color_scheme_seed=ft.Colors.BLUE, use_material3=True)

    notifier = Notifier(TOAST_DURATION_MS)
    bind_toasts(page, notifier)

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------
    current_view = "dashboard"
    ctx = None

    try:
        backend = await Backend.connect()
    except BackendError as ex:
        logger.error("Backend unavailable: %s", ex.message)
        page.add(ft.Container(
            content=ft.Column([
                ft.Icon(ft.Icons.CLOUD_OFF, size=64, color=ft.Colors.RED_400),
                ft.Text("Cannot reach the school database", size=20, weight=ft.FontWeight.BOLD),
                ft.Text(ex.message, color=ft.Colors.GREY_600),
            ], horizontal_alignment=ft.CrossAxisAlignment.CENTER),
            alignment=ft.alignment.center,
            expand=True,
        ))
        page.update()
        return

    session = Session(backend)

    # ---------- view routing ------------------------------------------
    def change_view(view_key: str):
        nonlocal current_view
        current_view = view_key
        show_main_app()

    # ---------- logout -------------------------------------------------
    async def logout(_):
        nonlocal current_view
        try:
            await session.sign_out()
        except BackendError as ex:
            logger.warning("Sign-out failed: %s", ex.message)
        current_view = "dashboard"
        show_login()

    # ---------- rebuild navigation on resize ---------------------------
    def on_resize(_):
        if session.signed_in:
            show_main_app()

    page.on_resized = on_resize

    # ---------- app-bar ------------------------------------------------
    def create_app_bar():
        identity = session.identity
        return ft.AppBar(
            title=ft.Text(APP_TITLE, weight=ft.FontWeight.BOLD),
            center_title=False,
            bgcolor=ft.Colors.BLUE_700,
            actions=[
                ft.PopupMenuButton(
                    items=[
                        ft.PopupMenuItem(text=f"Logged in as: {identity.full_name or identity.email}",
                                         disabled=True),
                        ft.PopupMenuItem(text=f"Role: {identity.role}", disabled=True),
                        ft.PopupMenuItem(),
                        ft.PopupMenuItem(text="Logout", icon=ft.Icons.LOGOUT, on_click=logout),
                    ],
                    icon=ft.Icons.ACCOUNT_CIRCLE,
                    icon_color=ft.Colors.WHITE,
                )
            ],
        )

    def unmount():
        nonlocal ctx
        if ctx is not None:
            ctx.dispose()
            ctx = None
        page.overlay.clear()
        page.controls.clear()

    # ---------- main layout -------------------------------------------
    def show_main_app():
        nonlocal ctx
        unmount()
        role = session.role
        keys = [key for key, _, _, _ in destinations_for(role)]
        view_key = current_view if current_view in keys else keys[0]

        ctx = SectionContext(page, backend, session, notifier)
        main_content = ROLE_VIEWS.get(role, ROLE_VIEWS["student"])(ctx, view_key)

        w = getattr(page.window, "width", None) or 800
        nav = navigation_rail(role, view_key, w, change_view)

        # ---------------- mobile ---------------------------------------
        if w < 600:
            page.add(
                create_app_bar(),
                ft.Container(content=main_content, expand=True),
                nav,
            )
        # ---------------- tablet -----------------------------
        elif w < 1024:
            page.add(
                create_app_bar(),
                ft.Container(
                    content=ft.Row(
                        [
                            ft.Container(content=nav, width=72, height=(page.height or 800) - 56),
                            ft.VerticalDivider(width=1),
                            ft.Container(content=main_content, expand=True),
                        ],
                        expand=True,
                    ),
                    expand=True,
                ),
            )
        # ---------------- desktop -----------------------------
        else:
            page.add(
                create_app_bar(),
                ft.Container(
                    content=ft.Column(
                        [nav, ft.Container(content=main_content, expand=True)],
                        spacing=0,
                        expand=True,
                    ),
                    expand=True,
                ),
            )
        page.update()

    # ---------- login -------------------------------------------------
    def show_login():
        unmount()
        field_width = min(300, (getattr(page.window, "width", None) or 400) * 0.8)
        email_field = ft.TextField(
            label="Email", prefix_icon=ft.Icons.EMAIL,
            width=field_width, autofocus=True,
        )
        pass_field = ft.TextField(
            label="Password", prefix_icon=ft.Icons.LOCK,
            password=True, can_reveal_password=True,
            width=field_width,
        )
        login_button = ft.ElevatedButton("Login", icon=ft.Icons.LOGIN, width=field_width)

        async def handle_login(_):
            if not email_field.value or not pass_field.value:
                notifier.show("Email and password are required", "warning")
                return
            login_button.disabled = True
            page.update()
            try:
                identity = await session.sign_in(email_field.value.strip(), pass_field.value)
            except BackendError as ex:
                logger.info("Login failed for %s: %s", email_field.value, ex.message)
                notifier.show("Invalid email or password!", "error")
                login_button.disabled = False
                page.update()
                return
            if identity.role not in ROLE_VIEWS:
                notifier.show("Your account has no role assigned", "error")
                try:
                    await session.sign_out()
                except BackendError as ex:
                    logger.warning("Sign-out failed: %s", ex.message)
                login_button.disabled = False
                page.update()
                return
            show_main_app()

        login_button.on_click = handle_login
        pass_field.on_submit = handle_login

        page.add(
            ft.Container(
                content=ft.Column(
                    [
                        ft.Icon(ft.Icons.SCHOOL, size=80, color=ft.Colors.BLUE_700),
                        ft.Text(APP_TITLE, size=24, weight=ft.FontWeight.BOLD),
                        ft.Divider(height=20),
                        email_field, pass_field,
                        login_button,
                    ],
                    horizontal_alignment=ft.CrossAxisAlignment.CENTER,
                    spacing=20,
                ),
                alignment=ft.alignment.center,
                expand=True,
            )
        )
        page.update()

    # ------------------------------------------------------------------
    # kick-off
    # ------------------------------------------------------------------
    try:
        await session.load()
    except BackendError as ex:
        logger.warning("Could not restore session: %s", ex.message)
    if session.signed_in and session.role in ROLE_VIEWS:
        show_main_app()
    else:
        show_login()


def run():
    setup_logging()
    ft.app(target=main)


if __name__ == "__main__":
    run()
