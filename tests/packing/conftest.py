import pytest
from protean.integrations.pytest import DomainFixture

from packing.feed import reset_feed
from packing.locking import reset_locks


@pytest.fixture(scope="session")
def packing_bed():
    from packing.domain import packing

    bed = DomainFixture(packing)
    bed.setup()
    yield bed
    bed.teardown()


@pytest.fixture(autouse=True)
def _ctx(packing_bed):
    reset_feed()
    reset_locks()
    with packing_bed.domain_context():
        yield
    reset_feed()
