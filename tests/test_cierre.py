from decimal import Decimal

import pytest
from django.core.exceptions import ValidationError
from django.core.files.storage import default_storage
from django.utils import timezone

from conftest import PDF
from desechos import almacen
from desechos.categorias import COLUMNAS_CANONICAS
from desechos.exceptions import Conflicto, NoEncontrado
from desechos.models import Registro
from desechos.reportes import AREAS_CANONICAS


pytestmark = pytest.mark.django_db


@pytest.fixture
def registro_cocina(generar, cocina, bolsa_roja, bolsa_negra, recolector):
    roja = generar(cocina, bolsa_roja, cantidad=1)[0]
    negra = generar(cocina, bolsa_negra, cantidad=1)[0]
    Registro.registrar_escaneo(roja.codigo, "3.0", usuario=recolector)
    return Registro.registrar_escaneo(negra.codigo, "1.0", usuario=recolector).registro


def _fila(resumen, area):
    return next(f for f in resumen["filas"] if f["area"] == area)


def test_no_se_cierra_un_registro_vacio(recolector):
    registro = Registro.obtener_o_crear_abierto(recolector)
    with pytest.raises(ValidationError) as exc:
        registro.cerrar(recolector, PDF)
    assert "vacío" in exc.value.messages[0]
    registro.refresh_from_db()
    assert registro.estado == Registro.ABIERTO
    assert registro.pdf == ""


def test_resumen_de_cierre_cocina(registro_cocina, recolector):
    resumen = registro_cocina.cerrar(recolector, PDF)

    assert resumen["registroId"] == registro_cocina.pk
    assert resumen["estado"] == Registro.CERRADO
    assert resumen["unidad"] == "lb"
    assert [c["titulo"] for c in resumen["columnas"]] == COLUMNAS_CANONICAS
    assert all(c["subtitulo"] == "Libras" for c in resumen["columnas"])
    assert [f["area"] for f in resumen["filas"]] == AREAS_CANONICAS

    cocina = _fila(resumen, "Cocina")
    assert [v["valor"] for v in cocina["valores"]] == [Decimal("3.00"), 0, 0, 0, Decimal("1.00")]
    assert cocina["responsable"] == "Ana López"
    assert [t["valor"] for t in resumen["totales"]] == [Decimal("3.00"), 0, 0, 0, Decimal("1.00")]
    assert [t["tipoId"] for t in resumen["totales"]] == [c["id"] for c in resumen["columnas"]]
    assert resumen["meta"]["advertencias"] == []
    assert resumen["encabezado"]["linea1"] == "Hospital Santa Bárbara"
    assert resumen["firma"]["cargo"] == "Encargado de Intendencia"


def test_cierre_marca_y_guarda_el_pdf(registro_cocina, recolector):
    registro_cocina.cerrar(recolector, PDF, nombre_archivo="hoja del día.pdf")

    registro = Registro.objects.get(pk=registro_cocina.pk)
    ahora = timezone.localtime(registro.cerrado_at)
    assert registro.estado == Registro.CERRADO
    assert registro.cerrado_por == recolector
    assert registro.total_peso_lb == Decimal("4.000")
    assert registro.pdf.startswith(f"registros/{ahora.year}/{ahora.month:02d}/registro_{registro.pk}_")
    assert registro.pdf.endswith("_hoja_del_día.pdf")
    assert almacen.leer_pdf(registro.pdf) == PDF


def test_cerrar_dos_veces_es_conflicto(registro_cocina, recolector, otro_recolector):
    registro_cocina.cerrar(recolector, PDF)
    antes = Registro.objects.get(pk=registro_cocina.pk)

    with pytest.raises(Conflicto):
        Registro.objects.get(pk=registro_cocina.pk).cerrar(otro_recolector, b"%PDF otro")

    despues = Registro.objects.get(pk=registro_cocina.pk)
    assert despues.estado == Registro.CERRADO
    assert despues.pdf == antes.pdf
    assert despues.cerrado_at == antes.cerrado_at
    assert despues.cerrado_por == recolector
    _, archivos = default_storage.listdir(antes.pdf.rsplit("/", 1)[0])
    assert len(archivos) == 1


def test_lineas_de_registro_cerrado_no_se_eliminan(registro_cocina, recolector):
    registro_cocina.cerrar(recolector, PDF)
    linea = registro_cocina.lineas.first()

    with pytest.raises(Conflicto):
        Registro.eliminar_linea(linea.pk)

    linea.etiqueta.refresh_from_db()
    assert linea.etiqueta.estado == linea.etiqueta.USADA
    assert Registro.objects.get(pk=registro_cocina.pk).total_peso_lb == Decimal("4.000")


def test_cierre_sin_pdf_no_cierra(registro_cocina, recolector):
    with pytest.raises(ValidationError):
        registro_cocina.cerrar(recolector, b"")
    assert Registro.objects.get(pk=registro_cocina.pk).estado == Registro.ABIERTO


def test_cierre_con_unidad_invalida(registro_cocina, recolector):
    with pytest.raises(ValidationError):
        registro_cocina.cerrar(recolector, PDF, unidad="oz")
    assert Registro.objects.get(pk=registro_cocina.pk).estado == Registro.ABIERTO


def test_cierre_de_registro_borrado(registro_cocina, recolector):
    fantasma = Registro(pk=999999)
    with pytest.raises(NoEncontrado):
        fantasma.cerrar(recolector, PDF)


def test_resumen_en_kilogramos_y_solo_areas_con_datos(registro_cocina, recolector):
    resumen = registro_cocina.cerrar(recolector, PDF, unidad="kg", solo_areas_con_datos=True)

    assert resumen["unidad"] == "kg"
    assert [f["area"] for f in resumen["filas"]] == ["Cocina"]
    valores = [v["valor"] for v in resumen["filas"][0]["valores"]]
    assert valores == [Decimal("1.36"), 0, 0, 0, Decimal("0.45")]
    assert resumen["columnas"][0]["subtitulo"] == "Kilogramos"


def test_cierre_concurrente_borra_el_pdf_huerfano(registro_cocina, recolector, monkeypatch):
    guardar_real = almacen.guardar_pdf
    guardados = []

    def guardar_mientras_otro_cierra(registro_id, *args, **kwargs):
        ref = guardar_real(registro_id, *args, **kwargs)
        guardados.append(ref)
        Registro.objects.filter(pk=registro_id).update(estado=Registro.CERRADO)
        return ref

    monkeypatch.setattr(almacen, "guardar_pdf", guardar_mientras_otro_cierra)

    with pytest.raises(Conflicto):
        registro_cocina.cerrar(recolector, PDF)
    assert len(guardados) == 1
    assert not default_storage.exists(guardados[0])
    assert Registro.objects.get(pk=registro_cocina.pk).pdf == ""
