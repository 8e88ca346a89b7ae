import datetime

import pytest
from django.contrib.auth.models import Group, User
from django.utils import timezone

from desechos.models import Area, Bolsa, LoteQR, Registro, TipoDesecho

PDF = b"%PDF-1.4\n% hoja oficial de prueba\n%%EOF"


@pytest.fixture(autouse=True)
def media_temporal(settings, tmp_path):
    settings.MEDIA_ROOT = tmp_path / "media"


# Los catálogos vienen de la migración 0003
@pytest.fixture
def tipos(db):
    return {t.nombre: t for t in TipoDesecho.objects.all()}


@pytest.fixture
def areas(db):
    return {a.nombre: a for a in Area.objects.all()}


@pytest.fixture
def cocina(areas):
    return areas["Cocina"]


@pytest.fixture
def lavanderia(areas):
    return areas["Lavandería"]


@pytest.fixture
def bolsa_roja(tipos):
    return Bolsa.objects.create(color="Roja", tamano="Grande", tipo_desecho=tipos["Desechos Infecciosos"])


@pytest.fixture
def bolsa_negra(tipos):
    return Bolsa.objects.create(color="Negra", tamano="Mediana", tipo_desecho=tipos["Desecho Común"])


def _usuario(username, grupo, **extra):
    user = User.objects.create_user(username, password="clave-segura-123", **extra)
    user.groups.add(Group.objects.get(name=grupo))
    return user


@pytest.fixture
def recolector(db):
    return _usuario("recolector", "Recolector", first_name="Ana", last_name="López")


@pytest.fixture
def otro_recolector(db):
    return _usuario("jperez", "Recolector")


@pytest.fixture
def estadistico(db):
    return _usuario("estadistico", "Estadístico", first_name="Luis")


@pytest.fixture
def cliente(client, recolector):
    client.force_login(recolector)
    return client


@pytest.fixture
def generar(recolector):
    """Genera un lote y devuelve sus etiquetas."""
    def _generar(area, bolsa, cantidad=4, por_hoja=4):
        _, etiquetas = LoteQR.generar(area.id, bolsa.id, por_hoja=por_hoja, cantidad=cantidad, usuario=recolector)
        return etiquetas
    return _generar


@pytest.fixture
def etiquetas_cocina(generar, cocina, bolsa_roja):
    return generar(cocina, bolsa_roja)


def a_las(dia, hora):
    return timezone.make_aware(datetime.datetime.combine(dia, datetime.time(hora)))


def cerrar_con_lineas(usuario, lineas, abierto_at=None):
    """Escanea ``[(etiqueta, peso)]`` en el registro abierto y lo cierra."""
    registro = None
    for etiqueta, peso in lineas:
        registro = Registro.registrar_escaneo(etiqueta.codigo, peso, usuario=usuario).registro
    if abierto_at is not None:
        Registro.objects.filter(pk=registro.pk).update(abierto_at=abierto_at)
        registro.refresh_from_db()
    registro.cerrar(usuario, PDF)
    registro.refresh_from_db()
    return registro
