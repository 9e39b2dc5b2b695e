"""Where each family record lives in the document store.

Family records sit under families/ so a join-code lookup only scans family
headers. Everything a family owns sits under family_data/{familyId}/ so that
reading a family never drags its whole history along.
"""

FAMILIES = "families"
FAMILY_DATA = "family_data"


def family(family_id: str) -> str:
    return f"{FAMILIES}/{family_id}"


def word_lists(family_id: str) -> str:
    return f"{FAMILY_DATA}/{family_id}/wordLists"


def word_list(family_id: str, list_id: str) -> str:
    return f"{word_lists(family_id)}/{list_id}"


def profiles(family_id: str) -> str:
    return f"{FAMILY_DATA}/{family_id}/profiles"


def profile(family_id: str, profile_id: str) -> str:
    return f"{profiles(family_id)}/{profile_id}"


def sessions(family_id: str) -> str:
    return f"{FAMILY_DATA}/{family_id}/sessions"


def session(family_id: str, session_id: str) -> str:
    return f"{sessions(family_id)}/{session_id}"


def streaks(family_id: str) -> str:
    return f"{FAMILY_DATA}/{family_id}/streaks"


def streak(family_id: str, profile_id: str) -> str:
    return f"{streaks(family_id)}/{profile_id}"
