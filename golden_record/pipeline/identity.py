"""
Identity Resolution

Partitions cleaned records into identity clusters using exact email and phone
keys, plus name/city and email-alias heuristics in probabilistic mode.
"""

import logging
from typing import Optional, Sequence

from golden_record.models.entities import CleanedRecord, IdentityCluster, IdentityMode

logger = logging.getLogger(__name__)


def fuzzy_key(record: CleanedRecord) -> Optional[str]:
    """Build the ``firstInitial_lastName_city`` key, lowercased."""
    if not record.first_name or not record.last_name:
        return None
    return f"{record.first_name[0].lower()}_{record.last_name.lower()}_{(record.city or '').lower()}"


def _split_email(email: str) -> tuple[str, str]:
    local, _, domain = email.partition("@")
    return local, domain


def phone_key(phone: Optional[str]) -> Optional[str]:
    """Phone value usable as a match key, or None when it carries no digits."""
    if phone and any(ch.isdigit() for ch in phone):
        return phone
    return None


class IdentityResolver:
    """Clusters cleaned records in a single ordered pass.

    Keeps an email index, a phone index and (probabilistic mode only) a
    fuzzy name+city index, each mapping a key to its current cluster. When a
    record's email and phone point at different clusters, the phone-side
    cluster is folded into the email-side one.
    """

    def __init__(self, mode: IdentityMode | str = IdentityMode.DETERMINISTIC):
        self.mode = IdentityMode(mode)
        self._email_index: dict[str, IdentityCluster] = {}
        self._phone_index: dict[str, IdentityCluster] = {}
        self._fuzzy_index: dict[str, IdentityCluster] = {}
        self._clusters: list[IdentityCluster] = []
        self.merge_count = 0

    @property
    def is_probabilistic(self) -> bool:
        return self.mode == IdentityMode.PROBABILISTIC

    def _reset(self) -> None:
        self._email_index = {}
        self._phone_index = {}
        self._fuzzy_index = {}
        self._clusters = []
        self.merge_count = 0

    def _merge(self, target: IdentityCluster, folded: IdentityCluster) -> None:
        """Move every record of ``folded`` into ``target`` and drop ``folded``."""
        target.records.extend(folded.records)
        folded.records = []

        for index in (self._email_index, self._phone_index, self._fuzzy_index):
            for key, cluster in index.items():
                if cluster is folded:
                    index[key] = target

        self._clusters = [c for c in self._clusters if c is not folded]
        self.merge_count += 1
        logger.debug(f"Merged cluster {folded.id} into {target.id} ({target.size} records)")

    def _similar_email_cluster(self, email: str) -> Optional[IdentityCluster]:
        """Find a cluster holding an alias-looking email.

        Same domain, same first letter of the local part, different local part.
        """
        local, domain = _split_email(email)
        if not local or not domain:
            return None

        initial = local[0].lower()
        for existing, cluster in self._email_index.items():
            existing_local, existing_domain = _split_email(existing)
            if (
                existing_domain == domain
                and existing_local[:1].lower() == initial
                and existing_local != local
            ):
                return cluster
        return None

    def _register(self, record: CleanedRecord, cluster: IdentityCluster) -> None:
        if record.email:
            self._email_index[record.email] = cluster
        phone = phone_key(record.phone)
        if phone:
            self._phone_index[phone] = cluster
        if self.is_probabilistic:
            key = fuzzy_key(record)
            if key:
                self._fuzzy_index[key] = cluster

    def add_record(self, record: CleanedRecord) -> IdentityCluster:
        """Place one record into a cluster and return that cluster."""
        assigned: Optional[IdentityCluster] = None

        # Exact email match
        if record.email and record.email in self._email_index:
            assigned = self._email_index[record.email]

        # Exact phone match, bridging two clusters if email already matched
        phone = phone_key(record.phone)
        if phone and phone in self._phone_index:
            phone_cluster = self._phone_index[phone]
            if assigned is not None and assigned is not phone_cluster:
                self._merge(assigned, phone_cluster)
            else:
                assigned = phone_cluster

        if self.is_probabilistic and assigned is None:
            key = fuzzy_key(record)
            if key and key in self._fuzzy_index:
                assigned = self._fuzzy_index[key]

        if self.is_probabilistic and assigned is None and record.email:
            assigned = self._similar_email_cluster(record.email)

        if assigned is None:
            assigned = IdentityCluster()
            self._clusters.append(assigned)

        assigned.records.append(record)
        self._register(record, assigned)
        return assigned

    def resolve(self, records: Sequence[CleanedRecord]) -> list[IdentityCluster]:
        """Partition ``records`` into identity clusters.

        Results depend on input order. Each call starts from empty indices.
        """
        self._reset()
        for record in records:
            self.add_record(record)

        logger.info(
            f"Identity resolution ({self.mode.value}): {len(records)} records -> "
            f"{len(self._clusters)} clusters, {self.merge_count} merges"
        )
        return list(self._clusters)


def resolve_identities(
    cleaned_records: Sequence[CleanedRecord],
    mode: IdentityMode | str = IdentityMode.DETERMINISTIC,
) -> list[IdentityCluster]:
    """Cluster cleaned records under the given matching mode."""
    return IdentityResolver(mode).resolve(cleaned_records)
