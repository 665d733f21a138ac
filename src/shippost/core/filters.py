"""Commit filtering applied before storage."""

SKIP_MARKER = "[skip-post]"


def is_postable_commit(message: str, author: str = "") -> bool:
    """
    Check if a pushed commit may feed a post.

    Merge commits, commits by bots and commits carrying the opt-out marker
    are dropped.

    Args:
        message: Commit message
        author: Author name (or username when the name is missing)

    Returns:
        True if the commit should be stored
    """
    if message.startswith("Merge "):
        return False
    if "bot" in (author or "").lower():
        return False
    if SKIP_MARKER in message:
        return False
    return True
