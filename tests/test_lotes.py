import pytest
from django.core.exceptions import ValidationError

from desechos import models as desechos_models
from desechos.exceptions import Conflicto, NoEncontrado
from desechos.models import Bolsa, EtiquetaQR, LoteQR, Registro


pytestmark = pytest.mark.django_db


def test_generar_lote_de_cuatro(cocina, bolsa_roja, recolector):
    lote, etiquetas = LoteQR.generar(cocina.id, bolsa_roja.id, por_hoja=4, cantidad=4, usuario=recolector)

    assert len(etiquetas) == 4
    assert len({e.codigo for e in etiquetas}) == 4
    assert all(e.estado == EtiquetaQR.ACTIVA for e in etiquetas)
    assert all(e.lote_id == lote.id for e in etiquetas)
    assert [e.id for e in etiquetas] == sorted(e.id for e in etiquetas)
    assert lote.created_by == recolector
    assert lote.puede_eliminar


def test_cantidad_por_defecto_es_por_hoja(cocina, bolsa_roja):
    lote, etiquetas = LoteQR.generar(cocina.id, bolsa_roja.id, por_hoja=6)
    assert lote.cantidad == 6
    assert len(etiquetas) == 6


def test_tipo_debe_coincidir_con_la_bolsa(cocina, bolsa_roja, tipos):
    with pytest.raises(ValidationError):
        LoteQR.generar(cocina.id, bolsa_roja.id, tipo_desecho_id=tipos["Desecho Común"].id)
    lote, _ = LoteQR.generar(cocina.id, bolsa_roja.id, tipo_desecho_id=tipos["Desechos Infecciosos"].id)
    assert lote.pk


@pytest.mark.parametrize("cantidad", [0, -2, "muchas"])
def test_cantidad_invalida(cocina, bolsa_roja, cantidad):
    with pytest.raises(ValidationError):
        LoteQR.generar(cocina.id, bolsa_roja.id, cantidad=cantidad)
    assert not LoteQR.objects.exists()


def test_area_o_bolsa_inexistente(cocina, bolsa_roja):
    with pytest.raises(NoEncontrado):
        LoteQR.generar(999999, bolsa_roja.id)
    with pytest.raises(NoEncontrado):
        LoteQR.generar(cocina.id, 999999)


def test_catalogo_inactivo_o_bolsa_sin_tipo(cocina, bolsa_roja):
    sin_tipo = Bolsa.objects.create(color="Blanca")
    with pytest.raises(ValidationError):
        LoteQR.generar(cocina.id, sin_tipo.id)

    cocina.activo = False
    cocina.save()
    with pytest.raises(ValidationError):
        LoteQR.generar(cocina.id, bolsa_roja.id)


def test_colision_de_codigo_reintenta(cocina, bolsa_roja, etiquetas_cocina, monkeypatch):
    repetido = etiquetas_cocina[0].codigo
    llamadas = []
    real = desechos_models.generar_codigos

    def con_colision(cantidad):
        llamadas.append(cantidad)
        if len(llamadas) == 1:
            return [repetido] + real(cantidad - 1)
        return real(cantidad)

    monkeypatch.setattr(desechos_models, "generar_codigos", con_colision)
    lote, etiquetas = LoteQR.generar(cocina.id, bolsa_roja.id, cantidad=3)

    assert len(llamadas) == 2
    assert repetido not in {e.codigo for e in etiquetas}
    assert LoteQR.objects.count() == 2
    assert EtiquetaQR.objects.count() == 4 + 3


def test_colisiones_agotan_reintentos(cocina, bolsa_roja, etiquetas_cocina, monkeypatch, settings):
    settings.DESECHOS_REINTENTOS_CODIGO = 2
    repetido = etiquetas_cocina[0].codigo
    monkeypatch.setattr(desechos_models, "generar_codigos", lambda cantidad: [repetido])

    with pytest.raises(Conflicto) as exc:
        LoteQR.generar(cocina.id, bolsa_roja.id, cantidad=1)
    assert exc.value.motivo == "codigo_duplicado"
    assert LoteQR.objects.count() == 1


def test_eliminar_lote_sin_usar_borra_etiquetas(etiquetas_cocina):
    lote = etiquetas_cocina[0].lote
    lote.delete()
    assert not LoteQR.objects.exists()
    assert not EtiquetaQR.objects.exists()


def test_no_se_elimina_lote_con_etiquetas_usadas(etiquetas_cocina, recolector):
    Registro.registrar_escaneo(etiquetas_cocina[0].codigo, "1.0", usuario=recolector)
    lote = LoteQR.objects.get()

    assert not lote.puede_eliminar
    with pytest.raises(ValidationError):
        lote.delete()
    assert LoteQR.objects.filter(pk=lote.pk).exists()
    assert EtiquetaQR.objects.filter(lote=lote).count() == 4
