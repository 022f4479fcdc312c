"""Interactive terminal menu helpers, based on simple_term_menu."""

from simple_term_menu import TerminalMenu


def select_menu(items: list[str], title: str) -> int | None:
    """Show a single-select menu. Returns selected index or None if cancelled."""
    menu = TerminalMenu(
        items,
        title=title,
        menu_cursor="> ",
        menu_cursor_style=("fg_cyan", "bold"),
    )
    return menu.show()
