from __future__ import annotations

from collections.abc import Generator
from types import SimpleNamespace

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from app.auth.security import create_access_token, hash_password
from app.core.db import Base, get_db
from app.main import app
from app.models.hierarchy import Celula, Discipulado, Rede
from app.models.matrix import Matrix, MatrixDomain
from app.models.member import Member
from app.models.ministry import Ministry, WinnerPath
from app.models.role import Role

SQLALCHEMY_TEST_URL = "sqlite+pysqlite:///:memory:"
engine = create_engine(
    SQLALCHEMY_TEST_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False, expire_on_commit=False)

PASSWORD = "senha-segura-1"
PASSWORD_HASH = hash_password(PASSWORD)


def override_get_db() -> Generator[Session, None, None]:
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture(autouse=True)
def setup_database() -> Generator[None, None, None]:
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture()
def db_session() -> Generator[Session, None, None]:
    session = TestingSessionLocal()
    try:
        yield session
        session.commit()
    finally:
        session.close()


@pytest.fixture()
def client(db_session: Session) -> Generator[TestClient, None, None]:
    previous_factory = app.state.session_factory
    app.dependency_overrides.clear()
    app.dependency_overrides[get_db] = override_get_db
    app.state.session_factory = TestingSessionLocal
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()
    app.state.session_factory = previous_factory


@pytest.fixture()
def password() -> str:
    return PASSWORD


@pytest.fixture()
def auth_headers():
    def _build(member: Member, matrix: Matrix, origin: str | None = None) -> dict[str, str]:
        token = create_access_token(member_id=member.id, matrix_id=matrix.id, email=member.email)
        headers = {"Authorization": f"Bearer {token}"}
        if origin:
            headers["Origin"] = origin
        return headers

    return _build


def add_member(
    session: Session,
    name: str,
    matrix: Matrix,
    *,
    ministry: Ministry | None = None,
    email: str | None = None,
    roles: list[Role] | None = None,
) -> Member:
    member = Member(
        name=name,
        email=email,
        password=PASSWORD_HASH if email else None,
        has_system_access=email is not None,
        ministry_position_id=ministry.id if ministry else None,
    )
    member.matrices = [matrix]
    member.roles = list(roles or [])
    session.add(member)
    session.flush()
    return member


def _build_matrix(session: Session, name: str, domain: str, prefix: str) -> SimpleNamespace:
    matrix = Matrix(name=name)
    session.add(matrix)
    session.flush()
    session.add(MatrixDomain(domain=domain, matrix_id=matrix.id))

    ministries = {}
    for priority, ministry_type in enumerate(
        ("PRESIDENT_PASTOR", "PASTOR", "DISCIPULADOR", "LEADER", "LEADER_IN_TRAINING", "MEMBER")
    ):
        ministry = Ministry(name=ministry_type.title(), type=ministry_type, priority=priority, matrix_id=matrix.id)
        session.add(ministry)
        ministries[ministry_type] = ministry
    admin_role = Role(name="Administrador", is_admin=True, matrix_id=matrix.id)
    plain_role = Role(name="Secretaria", is_admin=False, matrix_id=matrix.id)
    winner_path = WinnerPath(name="Consolidação", priority=0, matrix_id=matrix.id)
    session.add_all([admin_role, plain_role, winner_path])
    session.flush()

    def email(handle: str) -> str:
        return f"{handle}.{prefix}@videira.test"

    admin = add_member(session, f"Admin {prefix}", matrix, email=email("admin"), roles=[admin_role])
    pastor = add_member(session, f"Pastor {prefix}", matrix, ministry=ministries["PASTOR"], email=email("pastor"))
    discipulador = add_member(
        session, f"Discipulador {prefix}", matrix, ministry=ministries["DISCIPULADOR"], email=email("discipulador")
    )
    leader = add_member(session, f"Lider {prefix}", matrix, ministry=ministries["LEADER"], email=email("lider"))
    vice = add_member(
        session, f"Vice {prefix}", matrix, ministry=ministries["LEADER_IN_TRAINING"], email=email("vice")
    )
    other_leader = add_member(
        session, f"Outro Lider {prefix}", matrix, ministry=ministries["LEADER"], email=email("outro")
    )
    plain = add_member(session, f"Membro {prefix}", matrix, ministry=ministries["MEMBER"], email=email("membro"))

    rede = Rede(name=f"Rede {prefix}", pastor_member_id=pastor.id, matrix_id=matrix.id)
    other_rede = Rede(name=f"Rede Sul {prefix}", matrix_id=matrix.id)
    session.add_all([rede, other_rede])
    session.flush()
    discipulado = Discipulado(rede_id=rede.id, discipulador_member_id=discipulador.id, matrix_id=matrix.id)
    other_discipulado = Discipulado(rede_id=other_rede.id, matrix_id=matrix.id)
    session.add_all([discipulado, other_discipulado])
    session.flush()
    celula = Celula(
        name=f"Celula Videira {prefix}",
        weekday=3,
        time="19:30",
        leader_member_id=leader.id,
        vice_leader_member_id=vice.id,
        discipulado_id=discipulado.id,
        matrix_id=matrix.id,
    )
    other_celula = Celula(
        name=f"Celula Ramos {prefix}",
        weekday=5,
        time="20:00",
        leader_member_id=other_leader.id,
        discipulado_id=other_discipulado.id,
        matrix_id=matrix.id,
    )
    session.add_all([celula, other_celula])
    session.flush()

    attendees = [
        add_member(session, f"Participante {index} {prefix}", matrix, ministry=ministries["MEMBER"])
        for index in range(1, 4)
    ]
    for member in (leader, vice, *attendees):
        member.celula_id = celula.id
    other_leader.celula_id = other_celula.id
    plain.celula_id = other_celula.id
    session.flush()

    return SimpleNamespace(
        matrix=matrix,
        domain=domain,
        ministries=ministries,
        admin_role=admin_role,
        plain_role=plain_role,
        winner_path=winner_path,
        admin=admin,
        pastor=pastor,
        discipulador=discipulador,
        leader=leader,
        vice=vice,
        other_leader=other_leader,
        plain=plain,
        attendees=attendees,
        rede=rede,
        other_rede=other_rede,
        discipulado=discipulado,
        other_discipulado=other_discipulado,
        celula=celula,
        other_celula=other_celula,
    )


@pytest.fixture()
def world(db_session: Session) -> SimpleNamespace:
    """Two isolated matrices with a full rede -> discipulado -> celula chain each."""

    centro = _build_matrix(db_session, "Videira Centro", "centro.videira.test", "centro")
    norte = _build_matrix(db_session, "Videira Norte", "norte.videira.test", "norte")
    db_session.commit()
    return SimpleNamespace(a=centro, b=norte)


@pytest.fixture()
def make_member(db_session: Session):
    def _make(name: str, matrix: Matrix, **kwargs) -> Member:
        member = add_member(db_session, name, matrix, **kwargs)
        db_session.commit()
        return member

    return _make
