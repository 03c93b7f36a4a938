import pytest
from protean.integrations.pytest import DomainFixture


@pytest.fixture(scope="session")
def circulation_bed():
    from circulation.domain import circulation

    bed = DomainFixture(circulation)
    bed.setup()
    yield bed
    bed.teardown()


@pytest.fixture(autouse=True)
def _ctx(circulation_bed):
    with circulation_bed.domain_context():
        yield


@pytest.fixture()
def service():
    from circulation.service import CirculationService

    return CirculationService()


@pytest.fixture()
def register_book(service):
    def _register(title="The Left Hand of Darkness", copies=3, **overrides):
        return service.register_book(title, copies=copies, **overrides)

    return _register
