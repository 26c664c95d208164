"""Mirrorbast constants."""

# Lobby site every session starts from.
HOME_URL = "https://karabast.net"

# Substring that identifies the invite address input once a lobby exists.
HANDOFF_FRAGMENT = "karabast.net/lobby"

# Deck metadata endpoint lives on the same host.
METADATA_API_URL = HOME_URL
