# desechos/hojas.py
"""
Maquetado de las hojas de etiquetas de un lote.

Aquí solo se decide la geometría (en puntos PDF, tamaño carta) y el contenido
de cada celda; el dibujo del PDF lo hace quien imprime. Las imágenes QR se
generan con qrcode igual que en el detalle de consumos.
"""
import base64
import math
from dataclasses import dataclass, field
from io import BytesIO

import qrcode

from .codigos import payload_etiqueta

# Carta: 612 x 792 pt, márgenes de media pulgada
ANCHO_PAGINA = 612.0
ALTO_PAGINA = 792.0
MARGEN = 36.0

GRILLAS = {
    1: (1, 1),
    2: (1, 2),
    4: (2, 2),
    6: (3, 2),
    8: (4, 2),
    10: (5, 2),
    12: (4, 3),
}

# Tamaño de QR, fuente y espaciado por cantidad de etiquetas por hoja
ESTILOS = {
    8: {"qr": 170.0, "fs": 10.5, "gap": 2.0, "mostrar_tipo": True},
    10: {"qr": 150.0, "fs": 10.0, "gap": 3.0, "mostrar_tipo": True},
    12: {"qr": 130.0, "fs": 9.4, "gap": 3.0, "mostrar_tipo": False},
}


def grilla_para(por_hoja):
    """Devuelve (columnas, filas) para la cantidad de etiquetas por hoja."""
    try:
        n = int(por_hoja)
    except (TypeError, ValueError):
        n = 4
    if n < 1:
        n = 4
    if n in GRILLAS:
        return GRILLAS[n]
    cols = max(1, math.ceil(math.sqrt(n)))
    rows = max(1, math.ceil(n / cols))
    return cols, rows


def estilo_para(por_hoja):
    return ESTILOS.get(por_hoja, ESTILOS[8])


def sin_prefijo_desechos(nombre):
    texto = (nombre or "").strip()
    for prefijo in ("desechos ", "desecho "):
        if texto.lower().startswith(prefijo):
            return texto[len(prefijo):].lstrip()
    return texto


def qr_png_base64(contenido, lado=None) -> str:
    img = qrcode.make(contenido)
    if lado:
        lado = int(round(lado))
        img = img.resize((lado, lado))
    buffer_qr = BytesIO()
    img.save(buffer_qr, format="PNG")
    return base64.b64encode(buffer_qr.getvalue()).decode("utf-8")


@dataclass
class Celda:
    indice: int
    pagina: int
    fila: int
    columna: int
    x: float
    y: float
    ancho: float
    alto: float
    qr_x: float
    qr_y: float
    qr_lado: float
    codigo: str
    payload: str
    lineas: list = field(default_factory=list)
    fuente: float = 10.5
    qr_png: str = ""


@dataclass
class Hoja:
    columnas: int
    filas: int
    por_pagina: int
    paginas: int
    celdas: list

    def como_dict(self):
        return {
            "columnas": self.columnas,
            "filas": self.filas,
            "porPagina": self.por_pagina,
            "paginas": self.paginas,
            "pagina": {"ancho": ANCHO_PAGINA, "alto": ALTO_PAGINA, "margen": MARGEN},
            "celdas": [c.__dict__ for c in self.celdas],
        }


def maquetar(etiquetas, por_hoja, area_id, area_nombre, bolsa_id, bolsa_texto,
             tipo_nombre=None, con_imagenes=False):
    """
    ``etiquetas`` es la lista ordenada de códigos del lote. Las etiquetas se
    reparten por filas, de izquierda a derecha, y se abre página nueva cada
    ``columnas * filas`` etiquetas.
    """
    cols, rows = grilla_para(por_hoja)
    por_pagina = cols * rows
    estilo = estilo_para(por_hoja)

    ancho_util = ANCHO_PAGINA - 2 * MARGEN
    alto_util = ALTO_PAGINA - 2 * MARGEN
    ancho_celda = ancho_util / cols
    alto_celda = alto_util / rows
    qr_lado = min(estilo["qr"], max(96.0, min(ancho_celda, alto_celda) - 86.0))

    celdas = []
    for i, codigo in enumerate(etiquetas):
        idx = i % por_pagina
        fila, columna = divmod(idx, cols)
        x = MARGEN + columna * ancho_celda
        y = MARGEN + fila * alto_celda
        payload = payload_etiqueta(codigo, area_id, bolsa_id)

        lineas = [f"Área: {area_nombre}", f"Bolsa: {bolsa_texto}"]
        if estilo["mostrar_tipo"] and tipo_nombre:
            lineas.append(f"Tipo: {sin_prefijo_desechos(tipo_nombre)}")
        lineas.append(f"Código: {codigo}")

        celdas.append(Celda(
            indice=i,
            pagina=i // por_pagina,
            fila=fila,
            columna=columna,
            x=x,
            y=y,
            ancho=ancho_celda,
            alto=alto_celda,
            qr_x=x + (ancho_celda - qr_lado) / 2,
            qr_y=y + 14,
            qr_lado=qr_lado,
            codigo=codigo,
            payload=payload,
            lineas=lineas,
            fuente=estilo["fs"],
            qr_png=qr_png_base64(payload, qr_lado) if con_imagenes else "",
        ))

    paginas = math.ceil(len(etiquetas) / por_pagina) if etiquetas else 0
    return Hoja(columnas=cols, filas=rows, por_pagina=por_pagina, paginas=paginas, celdas=celdas)
