import io
import json
from collections.abc import Callable

import httpx
import pytest
from httpx import ASGITransport, AsyncClient
from reportlab.lib.pagesizes import A4
from reportlab.pdfgen import canvas
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from pickup_intake.models.base import Base
# Import all models so they register with Base.metadata for create_all
import pickup_intake.models  # noqa: F401
from pickup_intake.registry.client import RegistryClient

REGISTRY_URL = "http://registry.test/api"

# One pickup order, line by line, as pdfplumber reads it back.
SAMPLE_LINES = [
    "BUONO DI RITIRO PROD 12 34567890123",
    "Data emissione buono 15 marzo 2024",
    "Mittente: CC ECO SERVIZI SICILIA",
    "Indirizzo: Via Roma 12 Citta: Siracusa SR Tel: 0931 123456",
    "Email: info@ecoservizi.it",
    "Destinatario: CSS PLASTICHE RIUNITE SRL",
    "Indirizzo: Zona Industriale Catania Tel: 095 654321",
    "Lista bacini 1234567 A COMUNE DI SIRACUSA",
    "Distanza Chilometrica 65,5 km",
    "Data carico 18 marzo 2024 / 20 marzo 2024",
    "Data Disponibilita 17 marzo 2024",
    "Trasportatore: ROSSI",
]


class FakeRegistryServer:
    """In-memory registry API served through ``httpx.MockTransport``."""

    def __init__(self):
        self.logistics: list[dict] = []
        self.clients: list[dict] = []
        self.basins: list[dict] = []
        self.requests: list[httpx.Request] = []
        self.down = False
        self.failing_names: set[str] = set()
        self.reject_orders = False
        self._next_id = 100

    @property
    def writes(self) -> list[httpx.Request]:
        return [r for r in self.requests if r.method == "POST"]

    def add_entity(self, entity_id: str, name: str, entity_type: str, city: str | None = None) -> None:
        self.logistics.append({"id": entity_id, "name": name, "entityType": entity_type, "city": city})

    def seed_sample(self) -> None:
        """Registry content matching ``SAMPLE_LINES`` exactly."""
        self.add_entity("s-1", "CC ECO SERVIZI SICILIA", "SENDER", "Siracusa")
        self.add_entity("r-1", "CSS PLASTICHE RIUNITE SRL", "RECIPIENT", "Catania")
        self.add_entity("t-1", "ROSSI", "TRANSPORTER")
        self.clients.append({"id": "c-1", "name": "CC ECO SERVIZI SICILIA"})
        self.basins.append({
            "id": "b-1", "code": "1234567", "description": "COMUNE DI SIRACUSA",
            "flowType": "A", "clientId": "c-1",
        })
        self.basins.append({
            "id": "b-2", "code": "7654321", "description": "COMUNE DI CATANIA",
            "flowType": "B", "clientId": "c-1",
        })

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.down:
            raise httpx.ConnectError("registry down", request=request)

        path = request.url.path.removeprefix("/api")
        if request.method == "GET":
            if path == "/health":
                return httpx.Response(200, json={"status": "ok"})
            if path == "/logistics/suggestions":
                entity_type = request.url.params["type"]
                query = request.url.params["q"].lower()
                return httpx.Response(200, json=[
                    {**entity, "isExactMatch": entity["name"].lower() == query}
                    for entity in self.logistics
                    if entity["entityType"] == entity_type
                ])
            if path == "/clients":
                return httpx.Response(200, json=self.clients)
            if path == "/basins":
                return httpx.Response(200, json=self.basins)

        if request.method == "POST":
            body = json.loads(request.content)
            if path == "/logistics":
                if body["name"] in self.failing_names:
                    return httpx.Response(422, json={"message": f"Duplicate entity {body['name']}"})
                self._next_id += 1
                entity = {"id": f"n-{self._next_id}", **body}
                self.logistics.append(entity)
                return httpx.Response(201, json=entity)
            if path == "/pickup-orders":
                if self.reject_orders:
                    return httpx.Response(400, json={"message": "Order number already exists"})
                return httpx.Response(201, json={"id": "po-1", **body})

        return httpx.Response(404, json={"message": "Not found"})


@pytest.fixture
def sample_text() -> str:
    return "\n".join(SAMPLE_LINES)


@pytest.fixture
def registry_server() -> FakeRegistryServer:
    return FakeRegistryServer()


@pytest.fixture
def seeded_server(registry_server) -> FakeRegistryServer:
    registry_server.seed_sample()
    return registry_server


@pytest.fixture
async def registry(registry_server):
    client = RegistryClient(REGISTRY_URL, transport=httpx.MockTransport(registry_server.handler))
    yield client
    await client.aclose()


@pytest.fixture
def make_pdf() -> Callable[..., bytes]:
    """Build a text PDF with reportlab, one list of lines per page."""

    def _make_pdf(*pages: list[str]) -> bytes:
        buffer = io.BytesIO()
        pdf = canvas.Canvas(buffer, pagesize=A4)
        for lines in pages:
            y = 800
            for line in lines:
                pdf.drawString(50, y, line)
                y -= 18
            pdf.showPage()
        pdf.save()
        return buffer.getvalue()

    return _make_pdf


@pytest.fixture
def sample_pdf(make_pdf) -> bytes:
    return make_pdf(SAMPLE_LINES)


@pytest.fixture
async def test_engine(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}", echo=False)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
async def db_session(test_engine):
    session_factory = async_sessionmaker(
        test_engine, class_=AsyncSession, expire_on_commit=False
    )
    async with session_factory() as session:
        yield session
        await session.rollback()


@pytest.fixture
async def client(db_session, registry, tmp_path):
    from pickup_intake.config import settings
    from pickup_intake.dependencies import get_db, get_registry
    from pickup_intake.main import app

    # Override upload dir to temp
    original_upload_dir = settings.upload_dir
    settings.upload_dir = str(tmp_path / "uploads")

    async def override_get_db():
        yield db_session

    async def override_get_registry():
        yield registry

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_registry] = override_get_registry

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()
    settings.upload_dir = original_upload_dir
