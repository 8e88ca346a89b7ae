# desechos/codigos.py
"""
Códigos de etiqueta y el contenido que se imprime dentro del QR.

El contenido impreso es un JSON compacto ``{"t":"HSB_QR","c":..,"a":..,"b":..}``.
Las etiquetas ya pegadas en bolsas sobreviven a cualquier despliegue, así que
``c``, ``a`` y ``b`` no pueden cambiar de significado.
"""
import json
import secrets
import string
import time
from dataclasses import dataclass
from typing import Optional

TIPO_PAYLOAD = "HSB_QR"

_BASE36 = string.digits + string.ascii_uppercase


def _base36(n: int) -> str:
    if n == 0:
        return "0"
    out = []
    while n:
        n, r = divmod(n, 36)
        out.append(_BASE36[r])
    return "".join(reversed(out))


def generar_codigo() -> str:
    """Milisegundos en base36 + 3 bytes aleatorios en hex, todo en mayúsculas."""
    return f"{_base36(int(time.time() * 1000))}{secrets.token_hex(3).upper()}"


def generar_codigos(cantidad: int) -> list:
    codigos = set()
    while len(codigos) < cantidad:
        codigos.add(generar_codigo())
    return list(codigos)


def payload_etiqueta(codigo, area_id, bolsa_id) -> str:
    return json.dumps(
        {"t": TIPO_PAYLOAD, "c": str(codigo), "a": int(area_id), "b": int(bolsa_id)},
        separators=(",", ":"),
        ensure_ascii=False,
    )


@dataclass(frozen=True)
class QRLeido:
    codigo: str
    area_id: Optional[int] = None
    bolsa_id: Optional[int] = None


@dataclass(frozen=True)
class QRIlegible:
    crudo: str
    motivo: str


def _entero(valor):
    if valor in (None, "", 0, "0"):
        return None
    try:
        return int(valor)
    except (TypeError, ValueError):
        return None


def leer_qr(crudo):
    """
    Interpreta lo que entrega el lector (teclado HID): puede traer ruido
    alrededor del bloque ``{...}`` o ser solo el código impreso.
    Devuelve ``QRLeido`` o ``QRIlegible``.
    """
    texto = str(crudo or "").strip()
    if not texto:
        return QRIlegible(crudo=texto, motivo="vacío")

    i = texto.find("{")
    j = texto.rfind("}")
    if i >= 0 and j > i:
        bloque = texto[i:j + 1]
        try:
            obj = json.loads(bloque)
        except ValueError:
            return QRIlegible(crudo=bloque, motivo="JSON inválido")
        if not isinstance(obj, dict) or not obj.get("c"):
            return QRIlegible(crudo=bloque, motivo="sin código")
        return QRLeido(
            codigo=str(obj["c"]).strip(),
            area_id=_entero(obj.get("a")),
            bolsa_id=_entero(obj.get("b")),
        )

    if "{" in texto or "}" in texto or any(c.isspace() for c in texto):
        return QRIlegible(crudo=texto, motivo="formato desconocido")
    return QRLeido(codigo=texto)
