# desechos/almacen.py
"""PDFs de los registros cerrados, guardados con el storage por defecto de Django."""
import logging
import re

from django.core.files.base import ContentFile
from django.core.files.storage import default_storage
from django.utils import timezone

logger = logging.getLogger(__name__)

CARPETA = "registros"


def nombre_seguro(nombre):
    return re.sub(r"[^\w\-.]+", "_", str(nombre or "")).strip("_") or "hoja_oficial.pdf"


def ruta_para(registro_id, nombre_archivo, cuando=None):
    """registros/<año>/<mes>/registro_<id>_<ms>_<nombre>"""
    cuando = cuando or timezone.now()
    local = timezone.localtime(cuando)
    ms = int(cuando.timestamp() * 1000)
    return (
        f"{CARPETA}/{local.year}/{local.month:02d}/"
        f"registro_{registro_id}_{ms}_{nombre_seguro(nombre_archivo)}"
    )


def guardar_pdf(registro_id, contenido, nombre_archivo=None, cuando=None):
    """Guarda los bytes y devuelve la referencia (nombre dentro del storage)."""
    ruta = ruta_para(registro_id, nombre_archivo or f"Hoja_oficial_{registro_id}.pdf", cuando)
    ref = default_storage.save(ruta, ContentFile(contenido))
    logger.info("PDF del registro %s guardado en %s (%d bytes)", registro_id, ref, len(contenido))
    return ref


def abrir_pdf(ref):
    return default_storage.open(ref, "rb")


def leer_pdf(ref) -> bytes:
    with abrir_pdf(ref) as fh:
        return fh.read()


def borrar_pdf(ref):
    if ref and default_storage.exists(ref):
        default_storage.delete(ref)
        logger.info("PDF %s eliminado", ref)
