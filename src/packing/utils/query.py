"""Read-model query helpers."""

from protean.utils.globals import current_domain

# Protean querysets page at 100 rows unless told otherwise. Jobs can hold
# thousands of requirement rows and ledger entries.
FETCH_LIMIT = 100_000


def fetch_all(model, **filters):
    """Return every record of ``model`` matching ``filters``."""
    repo = current_domain.repository_for(model)
    return repo._dao.query.filter(**filters).limit(FETCH_LIMIT).all().items


def fetch_one(model, **filters):
    """Return the first record matching ``filters``, or None."""
    results = current_domain.repository_for(model)._dao.query.filter(**filters).all().items
    return results[0] if results else None
