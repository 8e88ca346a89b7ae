import re

from desechos.codigos import (
    QRIlegible, QRLeido, generar_codigo, generar_codigos, leer_qr, payload_etiqueta,
)


def test_generar_codigo_formato():
    codigo = generar_codigo()
    assert re.fullmatch(r"[0-9A-Z]+[0-9A-F]{6}", codigo)
    assert codigo == codigo.upper()


def test_generar_codigos_distintos():
    codigos = generar_codigos(50)
    assert len(codigos) == 50
    assert len(set(codigos)) == 50


def test_payload_compacto_en_orden_fijo():
    assert payload_etiqueta("ABC123", 1, 2) == '{"t":"HSB_QR","c":"ABC123","a":1,"b":2}'


def test_leer_payload_con_ruido_del_lector():
    crudo = "\x02 " + payload_etiqueta("ABC123", 7, 9) + "\r\n"
    assert leer_qr(crudo) == QRLeido(codigo="ABC123", area_id=7, bolsa_id=9)


def test_leer_codigo_suelto_sin_pistas():
    assert leer_qr("  LQ2K9XA1B2C3 ") == QRLeido(codigo="LQ2K9XA1B2C3")


def test_leer_qr_ilegible():
    assert leer_qr("") == QRIlegible(crudo="", motivo="vacío")
    assert leer_qr("{c:ABC}").motivo == "JSON inválido"
    assert leer_qr('{"t":"HSB_QR","a":1}').motivo == "sin código"
    assert leer_qr("hola mundo").motivo == "formato desconocido"


def test_pistas_en_cero_se_ignoran():
    assert leer_qr('{"t":"HSB_QR","c":"X1","a":0,"b":"3"}') == QRLeido(codigo="X1", area_id=None, bolsa_id=3)
