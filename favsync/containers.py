"""Firefox root containers and their place in the favorites convention.

A container is recognized by its row guid when the database stores one
(``toolbar_____`` and so on), otherwise by its title. Older profiles title
the containers ``Bookmarks Toolbar``, current ones store ``toolbar``.
"""

from typing import Optional

# Container keys
MENU = "menu"
TOOLBAR = "toolbar"
UNFILED = "unfiled"
TAGS = "tags"
MOBILE = "mobile"

ROOT_GUID = "root________"

ROOT_GUIDS = {
    "menu________": MENU,
    "toolbar_____": TOOLBAR,
    "unfiled_____": UNFILED,
    "tags________": TAGS,
    "mobile______": MOBILE,
}

# Titles older Firefox versions give the containers
BOOKMARKS_MENU = "Bookmarks Menu"
BOOKMARKS_TOOLBAR = "Bookmarks Toolbar"
UNSORTED_BOOKMARKS = "Unsorted Bookmarks"

CONTAINER_TITLES = {
    MENU: MENU,
    BOOKMARKS_MENU: MENU,
    TOOLBAR: TOOLBAR,
    BOOKMARKS_TOOLBAR: TOOLBAR,
    UNFILED: UNFILED,
    UNSORTED_BOOKMARKS: UNFILED,
    "Other Bookmarks": UNFILED,
    TAGS: TAGS,
    "Tags": TAGS,
    MOBILE: MOBILE,
    "Mobile Bookmarks": MOBILE,
}

# Favorites directories the mapped containers correspond to. "Links" is the
# directory Internet Explorer uses for the favorites bar.
FAVORITES_BAR = "Links"
UNCATEGORIZED_FOLDER = "” UNCATEGORIZED ”"

MAPPED_CONTAINERS = {
    TOOLBAR: FAVORITES_BAR,
    UNFILED: UNCATEGORIZED_FOLDER,
}

# Title written back when translating a favorites path to bookmark names
CONTAINER_LABELS = {
    MENU: BOOKMARKS_MENU,
    TOOLBAR: BOOKMARKS_TOOLBAR,
    UNFILED: UNSORTED_BOOKMARKS,
}


def container_key(title: Optional[str], guid: Optional[str] = None) -> Optional[str]:
    """Identify a root container.

    Args:
        title: Row title
        guid: Row guid, when the database has one

    Returns:
        The container key (``menu``, ``toolbar``, ...), or None

    Examples:
        >>> container_key("Bookmarks Toolbar")
        'toolbar'
        >>> container_key("Symbolleiste", "toolbar_____")
        'toolbar'
        >>> container_key("Work")
    """
    if guid and guid in ROOT_GUIDS:
        return ROOT_GUIDS[guid]
    return CONTAINER_TITLES.get(title or "")


def container_prefix(title: Optional[str]) -> Optional[tuple[str, ...]]:
    """Return the favorites hierarchy a bookmarks container maps to.

    The root and the menu map to the favorites root. Unmapped containers
    (tags, mobile) and ordinary directories give None.
    """
    if not title:
        return ()
    key = container_key(title)
    if key == MENU:
        return ()
    if key in MAPPED_CONTAINERS:
        return (MAPPED_CONTAINERS[key],)
    return None


def canonical_title(title: str, path_hierarchy: tuple[str, ...]) -> str:
    """Map a root-level container title into the favorites convention.

    ``Bookmarks Toolbar`` (or ``toolbar``) at the root becomes ``Links`` so
    the two directories compare equal. Titles below the root are unchanged.
    """
    if not path_hierarchy:
        key = container_key(title)
        if key in MAPPED_CONTAINERS:
            return MAPPED_CONTAINERS[key]
    return title
