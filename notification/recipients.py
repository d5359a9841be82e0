"""
Recipient resolution.

Maps a changed record to the set of user ids that should hear about it.
Each entity type has its own resolver, registered in RecipientResolver.
"""

import logging
from typing import Optional, Dict, Any, Callable, Iterable, Set, Sequence

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from database.uow import dispatch_uow

logger = logging.getLogger(__name__)

# Fields that may name an owner of an arbitrary record
OWNER_FIELDS = ('assigned_to', 'lawyer_id', 'assigned_lawyer_id', 'uploaded_by')

# Fields collected from a parent case
CASE_MEMBER_FIELDS = ('assigned_lawyer_id', 'lawyer_id', 'assigned_to')


def _clean(values: Iterable[Any]) -> Set[str]:
    """Drop None/empty values and normalise ids to strings."""
    return {str(v).strip() for v in values if v is not None and str(v).strip()}


def _as_list(value: Any) -> list:
    if isinstance(value, (list, tuple, set)):
        return list(value)
    return []


def first_present(record: Dict[str, Any], fields: Sequence[str]) -> Set[str]:
    """The first non-empty field in priority order, as a one-element set."""
    for name in fields:
        found = _clean([record.get(name)])
        if found:
            return found
    return set()


def collect_owners(record: Dict[str, Any]) -> Set[str]:
    """Union of every owner-like field present on the record."""
    owners = [record.get(name) for name in OWNER_FIELDS]
    owners.extend(_as_list(record.get('assigned_users')))
    return _clean(owners)


ResolverFn = Callable[["RecipientResolver", Dict[str, Any]], Set[str]]


class RecipientResolver:
    """
    Resolves recipients for a change event.

    Direct-assignment entities read one assignee field (first present wins),
    case-linked entities collect the members of the parent case, anything
    else gets the union of owner fields. The result never contains empty
    ids; an empty set is a valid answer.
    """

    _resolvers: Dict[str, ResolverFn] = {}

    def __init__(self, session_factory: sessionmaker = None):
        self.session_factory = session_factory

    @classmethod
    def register_resolver(cls, *entity_types: str) -> Callable[[ResolverFn], ResolverFn]:
        def decorator(fn: ResolverFn) -> ResolverFn:
            for entity_type in entity_types:
                cls._resolvers[entity_type] = fn
            return fn
        return decorator

    def resolve(self, entity_type: str, record: Dict[str, Any]) -> Set[str]:
        resolver = self._resolvers.get(entity_type)
        if resolver is None:
            return collect_owners(record)
        return _clean(resolver(self, record))

    def case_members(self, case_id: Optional[str]) -> Optional[Set[str]]:
        """
        Members of a case, or None when the case cannot be found.

        Raises:
            SQLAlchemyError: if the lookup fails
        """
        if not case_id:
            return None
        with dispatch_uow(self.session_factory) as repo:
            case = repo.practice.get_case(case_id)
            if case is None:
                return None
            members = [getattr(case, name) for name in CASE_MEMBER_FIELDS]
            members.extend(_as_list(case.assigned_users))
            return _clean(members)


@RecipientResolver.register_resolver('appointments')
def resolve_appointment(resolver: RecipientResolver, record: Dict[str, Any]) -> Set[str]:
    return first_present(record, ('assigned_lawyer_id', 'lawyer_id', 'assigned_to', 'user_id'))


@RecipientResolver.register_resolver('tasks')
def resolve_task(resolver: RecipientResolver, record: Dict[str, Any]) -> Set[str]:
    return first_present(record, ('assigned_to', 'assigned_lawyer_id', 'lawyer_id'))


@RecipientResolver.register_resolver('clients')
def resolve_client(resolver: RecipientResolver, record: Dict[str, Any]) -> Set[str]:
    return first_present(record, ('assigned_lawyer_id', 'lawyer_id', 'assigned_to'))


@RecipientResolver.register_resolver('documents', 'hearings', 'case_orders')
def resolve_case_linked(resolver: RecipientResolver, record: Dict[str, Any]) -> Set[str]:
    case_id = record.get('case_id')
    try:
        members = resolver.case_members(case_id)
    except SQLAlchemyError as e:
        logger.warning(f"Case member lookup failed for case {case_id}: {e}")
        members = None

    # Records not linked to a known case fall back to their own owner fields
    if members is None:
        return collect_owners(record)
    return members
