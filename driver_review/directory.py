"""
Peer directory.

Resolves a typed search token to addressable participants: co-located roster
members first, then participants known from history, and finally a
best-guess candidate built from the token itself.
"""

from .config import ServiceConfig
from .exceptions import EmptySearchError
from .interfaces import Roster
from .logging_config import get_logger
from .models import Candidate, split_identity
from .rating_store import RatingStore

# Module-level logger
logger = get_logger("directory", category="driver")


class PeerDirectory:
    """Search over the live roster and the store's known-participant caches."""

    def __init__(self, store: RatingStore, roster: Roster, config: ServiceConfig | None = None):
        self.store: RatingStore = store
        self.roster: Roster = roster
        self.config: ServiceConfig = config or ServiceConfig()

    def roster_candidates(self) -> list[Candidate]:
        """The co-located roster as candidates, always starting with the local participant."""
        local = self.store.local_identity
        local_name, local_realm = split_identity(local, self.store.local_realm)
        members = list(self.roster.current_roster())

        candidates = list[Candidate]()
        if not any(m.identity == local for m in members):
            candidates.append(Candidate(name=local_name, full_name=local, realm=local_realm, handle=None))
        for member in members:
            _, realm = split_identity(member.identity, self.store.local_realm)
            candidates.append(
                Candidate(name=member.display_name, full_name=member.identity, realm=realm, handle=member.handle)
            )
        return candidates

    def search(self, token: str | None) -> list[Candidate]:
        """
        Find participants whose name contains token (case-insensitive).

        Never returns an empty list for a non-empty token.

        Raises:
            EmptySearchError: If token is empty or only whitespace
        """
        raw = (token or "").strip()
        if not raw:
            raise EmptySearchError("No search criteria")
        needle = raw.lower()
        logger.debug(f"Searching for driver: {needle}")

        results = list[Candidate]()
        seen = set[str]()
        for candidate in self.roster_candidates():
            if needle in candidate.name.lower() and candidate.full_name not in seen:
                results.append(candidate)
                seen.add(candidate.full_name)

        if len(results) < self.config.group_match_threshold:
            for candidate in self.store.get_known_participants():
                if len(results) >= self.config.max_search_results:
                    break
                if candidate.full_name not in seen and needle in candidate.name.lower():
                    results.append(candidate)
                    seen.add(candidate.full_name)

        if not results:
            results.append(self._placeholder(needle, raw))

        logger.debug(f"Search for {needle!r} found {len(results)} candidates")
        return results

    def _placeholder(self, needle: str, raw: str) -> Candidate:
        """Best-guess candidate for a player nobody has seen yet."""
        name, _ = split_identity(needle)
        _, realm = split_identity(raw, self.store.local_realm)
        name = name[:1].upper() + name[1:]
        return Candidate(name=name, full_name=f"{name}-{realm}", realm=realm, source="search")
