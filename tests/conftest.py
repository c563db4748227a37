"""pytest fixtures for Attendify backend tests.

Provides:
- utc_timezone: Autouse fixture enforcing UTC timezone
- engine: Function-scoped in-memory SQLite engine with a fresh schema
- session: Function-scoped database session
- uow_factory: Function-scoped UnitOfWork factory
- ledger / gateway: In-process XRP Ledger double with a funded vault
- attendify: Initialized orchestrator wired to the fakes
"""

import os

# Settings validation is skipped in tests; must be set before attendify.app is imported
os.environ.setdefault("APP_ENV", "test")

from typing import AsyncGenerator  # noqa: E402

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession  # noqa: E402
from xrpl.wallet import Wallet  # noqa: E402

from attendify.core.database import create_engine, create_schema, setup_db_session  # noqa: E402
from attendify.models.event import NetworkIdentifier  # noqa: E402
from attendify.services.attendify import Attendify  # noqa: E402
from attendify.services.ledger.gateway import NetworkConfig  # noqa: E402
from attendify.uow import create_uow_factory  # noqa: E402
from factories import StubUploader, make_user  # noqa: E402
from fake_ledger import FakeLedger, FakeLedgerGateway  # noqa: E402

VAULT_BALANCE = 1_000_000_000


@pytest.fixture(scope="session", autouse=True)
def utc_timezone():
    """Enforce UTC timezone for all tests."""
    os.environ["TZ"] = "UTC"
    yield


@pytest_asyncio.fixture(scope="function")
async def engine():
    """Provide an in-memory database with all tables created."""
    engine = create_engine("sqlite+aiosqlite:///:memory:")
    await create_schema(engine)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def session(engine) -> AsyncGenerator[AsyncSession, None]:
    """Provide function-scoped database session.

    Each test gets a fresh in-memory database, so no truncation is needed.
    """
    session_factory = setup_db_session(engine)
    async with session_factory() as session:
        yield session
        await session.rollback()


@pytest_asyncio.fixture(scope="function")
async def uow_factory(engine):
    """Provide function-scoped UnitOfWork factory."""
    return create_uow_factory(setup_db_session(engine))


@pytest.fixture
def ledger() -> FakeLedger:
    return FakeLedger()


@pytest.fixture
def vault_wallet() -> Wallet:
    return Wallet.create()


@pytest.fixture
def gateway(ledger, vault_wallet) -> FakeLedgerGateway:
    """Gateway with a funded testnet vault."""
    ledger.fund(vault_wallet.classic_address, VAULT_BALANCE)
    return FakeLedgerGateway(
        ledger,
        {
            NetworkIdentifier.TESTNET: NetworkConfig(
                network_id=NetworkIdentifier.TESTNET,
                url="wss://testnet.example",
                vault_seed=vault_wallet.seed,
            )
        },
    )


@pytest.fixture
def uploader() -> StubUploader:
    return StubUploader()


@pytest_asyncio.fixture
async def attendify(uow_factory, gateway, uploader) -> Attendify:
    service = Attendify(uow_factory, gateway, uploader, default_slots=200)
    await service.init()
    return service


@pytest_asyncio.fixture
async def organizer(attendify, ledger, vault_wallet) -> str:
    """Funded organizer that authorized the vault as its NFTokenMinter."""
    address = await make_user(attendify, ledger)
    ledger.set_minter(address, vault_wallet.classic_address)
    return address
