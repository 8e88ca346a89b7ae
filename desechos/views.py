# desechos/views.py
# ============================================================
# IMPORTACIONES
# ============================================================
import json
import logging
import os
from decimal import Decimal
from functools import wraps

from django.contrib.auth.decorators import login_required, permission_required, user_passes_test
from django.core.exceptions import ValidationError, PermissionDenied
from django.core.paginator import Paginator
from django.core.serializers.json import DjangoJSONEncoder
from django.db.models import Count, Q
from django.http import JsonResponse, HttpResponse, FileResponse
from django.urls import reverse
from django.utils import timezone
from django.views.decorators.http import require_GET, require_POST, require_http_methods

from . import almacen
from .exceptions import NoEncontrado, Conflicto, TipoNoResuelto
from .forms import (
    GenerarLoteForm, EscaneoForm, CierreForm, ReporteForm,
    LineasFiltroForm, HistorialFiltroForm, PaginaForm,
)
from .hojas import maquetar
from .models import (
    TipoDesecho, LoteQR, EtiquetaQR, Registro, RegistroLinea, nombre_usuario,
)
from .reportes import resumen_por_registro, resumen_por_rango, resumen_a_csv, kpis, rango_local
from .unidades import lb_a_kg, peso3

logger = logging.getLogger(__name__)


# ============================================================
# UTILIDADES JSON
# ============================================================
class DesechosJSONEncoder(DjangoJSONEncoder):
    """Los pesos viajan como números, no como texto."""

    def default(self, o):
        if isinstance(o, Decimal):
            return float(o)
        return super().default(o)


def _json(data, status=200):
    return JsonResponse(data, status=status, encoder=DesechosJSONEncoder)


def api_json(view):
    """Traduce los errores del núcleo a respuestas ``{"mensaje": ...}``."""
    @wraps(view)
    def wrapper(request, *args, **kwargs):
        try:
            return view(request, *args, **kwargs)
        except NoEncontrado as e:
            return _json({"mensaje": str(e) or "No encontrado"}, status=404)
        except Conflicto as e:
            return _json({"mensaje": e.mensaje, "motivo": e.motivo}, status=409)
        except TipoNoResuelto as e:
            return _json({"mensaje": str(e), "sugerencia": e.sugerencia}, status=422)
        except ValidationError as e:
            return _json({"mensaje": "; ".join(e.messages)}, status=400)
    return wrapper


def _datos(request):
    """Cuerpo de la petición: formulario o JSON."""
    if request.content_type == "application/json":
        try:
            cuerpo = json.loads(request.body or b"{}")
        except ValueError:
            raise ValidationError("JSON inválido")
        if not isinstance(cuerpo, dict):
            raise ValidationError("JSON inválido")
        return cuerpo
    return request.POST


def _validar(form):
    if not form.is_valid():
        mensajes = [m for errores in form.errors.values() for m in errores]
        raise ValidationError(mensajes or "Datos inválidos")
    return form.cleaned_data


def _pagina(qs, filtros, serializar):
    paginador = Paginator(qs, filtros["page_size"])
    pagina = paginador.get_page(filtros["page"])
    return {
        "page": pagina.number,
        "pageSize": filtros["page_size"],
        "total": paginador.count,
        "items": [serializar(obj) for obj in pagina.object_list],
    }


def _fecha(valor):
    return valor.isoformat() if valor else None


def permiso_alguno(*permisos):
    """Como ``permission_required`` pero basta con uno de los permisos."""
    def chequear(user):
        if any(user.has_perm(p) for p in permisos):
            return True
        raise PermissionDenied
    return user_passes_test(chequear)


# ============================================================
# SERIALIZACIÓN
# ============================================================
def _lote_dict(lote):
    etiquetas = getattr(lote, "n_etiquetas", None)
    usadas = getattr(lote, "n_usadas", None)
    if etiquetas is None:
        etiquetas = lote.etiquetas.count()
    if usadas is None:
        usadas = lote.etiquetas_usadas
    tipo = lote.bolsa.tipo_desecho
    return {
        "id": lote.id,
        "areaId": lote.area_id,
        "area": lote.area.nombre,
        "bolsaId": lote.bolsa_id,
        "bolsa": lote.bolsa.descripcion,
        "tipoDesechoId": tipo.id if tipo else None,
        "tipoDesecho": tipo.nombre if tipo else None,
        "cantidad": lote.cantidad,
        "porHoja": lote.por_hoja,
        "creadoEn": _fecha(lote.created_at),
        "creadoPor": nombre_usuario(lote.created_by),
        "etiquetas": etiquetas,
        "usadas": usadas,
        "puedeEliminar": usadas == 0,
    }


def _etiqueta_dict(etiqueta):
    return {
        "id": etiqueta.id,
        "codigo": etiqueta.codigo,
        "estado": etiqueta.estado,
        "loteId": etiqueta.lote_id,
        "areaId": etiqueta.area_id,
        "bolsaId": etiqueta.bolsa_id,
        "usadoEn": _fecha(etiqueta.usado_en),
        "payload": etiqueta.payload,
    }


def _linea_dict(linea):
    return {
        "id": linea.id,
        "registroId": linea.registro_id,
        "codigo": linea.etiqueta.codigo,
        "areaId": linea.area_id,
        "area": linea.area.nombre,
        "bolsaId": linea.bolsa_id,
        "bolsa": linea.bolsa.descripcion,
        "tipoDesechoId": linea.tipo_desecho_id,
        "tipoDesecho": linea.tipo_desecho.nombre,
        "pesoLb": linea.peso_lb,
        "pesoKg": peso3(lb_a_kg(linea.peso_lb)),
        "creadoEn": _fecha(linea.created_at),
    }


def _registro_dict(registro):
    return {
        "id": registro.id,
        "estado": registro.estado,
        "abiertoAt": _fecha(registro.abierto_at),
        "cerradoAt": _fecha(registro.cerrado_at),
        "totalPesoLb": registro.total_peso_lb,
        "totalPesoKg": peso3(lb_a_kg(registro.total_peso_lb)),
        "responsable": registro.responsable,
        "cerradoPor": nombre_usuario(registro.cerrado_por),
        "pdfUrl": reverse("desechos:registro_pdf", args=[registro.id]) if registro.pdf else None,
    }


# ============================================================
# CÓDIGOS QR
# ============================================================
@login_required
@permission_required("desechos.codigos_qr", raise_exception=True)
@require_http_methods(["GET", "POST"])
@api_json
def lotes(request):
    if request.method == "POST":
        datos = _validar(GenerarLoteForm(_datos(request)))
        lote, etiquetas = LoteQR.generar(
            area_id=datos["area_id"],
            bolsa_id=datos["bolsa_id"],
            tipo_desecho_id=datos["tipo_desecho_id"],
            por_hoja=datos["por_hoja"],
            cantidad=datos["cantidad"],
            usuario=request.user,
        )
        hoja = _hoja_de(lote, etiquetas, datos["con_imagenes"])
        return _json({
            "lote": _lote_dict(lote),
            "etiquetas": [_etiqueta_dict(e) for e in etiquetas],
            "hoja": hoja.como_dict(),
        }, status=201)

    filtros = _validar(PaginaForm(request.GET))
    qs = (
        LoteQR.objects.select_related("area", "bolsa__tipo_desecho", "created_by")
        .annotate(
            n_etiquetas=Count("etiquetas"),
            n_usadas=Count("etiquetas", filter=Q(etiquetas__estado=EtiquetaQR.USADA)),
        )
        .order_by("-id")
    )
    return _json(_pagina(qs, filtros, _lote_dict))


def _hoja_de(lote, etiquetas, con_imagenes=False):
    tipo = lote.bolsa.tipo_desecho
    return maquetar(
        [e.codigo for e in etiquetas],
        por_hoja=lote.por_hoja,
        area_id=lote.area_id,
        area_nombre=lote.area.nombre,
        bolsa_id=lote.bolsa_id,
        bolsa_texto=lote.bolsa.descripcion,
        tipo_nombre=tipo.nombre if tipo else None,
        con_imagenes=con_imagenes,
    )


def _lote_o_404(pk):
    lote = LoteQR.objects.select_related("area", "bolsa__tipo_desecho", "created_by").filter(pk=pk).first()
    if lote is None:
        raise NoEncontrado("Lote no encontrado")
    return lote


@login_required
@permission_required("desechos.codigos_qr", raise_exception=True)
@require_http_methods(["GET", "DELETE"])
@api_json
def lote_detalle(request, pk):
    lote = _lote_o_404(pk)
    if request.method == "DELETE":
        lote.delete()
        return _json({"ok": True})
    etiquetas = list(lote.etiquetas.order_by("id"))
    return _json({"lote": _lote_dict(lote), "etiquetas": [_etiqueta_dict(e) for e in etiquetas]})


@login_required
@permission_required("desechos.codigos_qr", raise_exception=True)
@require_GET
@api_json
def lote_hoja(request, pk):
    lote = _lote_o_404(pk)
    con_imagenes = request.GET.get("imagenes", "1") not in ("0", "false", "no")
    hoja = _hoja_de(lote, list(lote.etiquetas.order_by("id")), con_imagenes)
    return _json({"lote": _lote_dict(lote), "hoja": hoja.como_dict()})


@login_required
@permission_required("desechos.codigos_qr", raise_exception=True)
@require_GET
@api_json
def tipos_permitidos(request):
    tipos = TipoDesecho.objects.filter(activo=True).order_by("id")
    return _json({"items": [{"id": t.id, "nombre": t.nombre} for t in tipos]})


@login_required
@permission_required("desechos.registro_diario", raise_exception=True)
@require_GET
@api_json
def etiqueta_info(request, codigo):
    etiqueta = (
        EtiquetaQR.objects.select_related("area", "bolsa__tipo_desecho")
        .filter(codigo=codigo.strip()).first()
    )
    if etiqueta is None:
        raise NoEncontrado("Etiqueta no encontrada")
    tipo = etiqueta.bolsa.tipo_desecho
    return _json({
        "etiqueta": _etiqueta_dict(etiqueta),
        "area": {"id": etiqueta.area_id, "nombre": etiqueta.area.nombre},
        "bolsa": {"id": etiqueta.bolsa_id, "color": etiqueta.bolsa.color, "tamano": etiqueta.bolsa.tamano},
        "tipoDesecho": {"id": tipo.id, "nombre": tipo.nombre} if tipo else None,
    })


# ============================================================
# REGISTRO DIARIO
# ============================================================
@login_required
@permission_required("desechos.registro_diario", raise_exception=True)
@require_GET
@api_json
def registro_abierto(request):
    registro = Registro.obtener_abierto()
    return _json({"registro": _registro_dict(registro) if registro else None})


@login_required
@permission_required("desechos.registro_diario", raise_exception=True)
@require_POST
@api_json
def escanear(request):
    datos = _validar(EscaneoForm(_datos(request)))
    linea = Registro.registrar_escaneo(
        datos["codigo"],
        datos["peso_lb"],
        usuario=request.user,
        area_id=datos.get("area_id"),
        bolsa_id=datos.get("bolsa_id"),
    )
    linea = RegistroLinea.objects.select_related(
        "registro__creado_por", "etiqueta", "area", "bolsa", "tipo_desecho"
    ).get(pk=linea.pk)
    return _json({"linea": _linea_dict(linea), "registro": _registro_dict(linea.registro)}, status=201)


@login_required
@permission_required("desechos.registro_diario", raise_exception=True)
@require_GET
@api_json
def lineas(request):
    filtros = _validar(LineasFiltroForm(request.GET))
    qs = RegistroLinea.objects.select_related("etiqueta", "area", "bolsa", "tipo_desecho")

    if filtros["alcance"] == "hoy":
        inicio, fin = rango_local(timezone.localdate())
        qs = qs.filter(registro__abierto_at__gte=inicio, registro__abierto_at__lt=fin)
    else:
        registro = Registro.obtener_abierto()
        if registro is None:
            return _json({"page": 1, "pageSize": filtros["page_size"], "total": 0, "items": []})
        qs = qs.filter(registro=registro)

    if filtros.get("area_id"):
        qs = qs.filter(area_id=filtros["area_id"])
    if filtros.get("bolsa_id"):
        qs = qs.filter(bolsa_id=filtros["bolsa_id"])
    if filtros.get("codigo"):
        qs = qs.filter(etiqueta__codigo__icontains=filtros["codigo"].strip())

    return _json(_pagina(qs.order_by("-id"), filtros, _linea_dict))


@login_required
@permission_required("desechos.registro_diario", raise_exception=True)
@require_http_methods(["DELETE", "POST"])
@api_json
def eliminar_linea(request, pk):
    registro = Registro.eliminar_linea(pk)
    return _json({"ok": True, "registro": _registro_dict(registro)})


@login_required
@permission_required("desechos.registro_diario", raise_exception=True)
@require_POST
@api_json
def cerrar_registro(request, pk):
    registro = Registro.objects.filter(pk=pk).first()
    if registro is None:
        raise NoEncontrado("Registro no existe")
    datos = _validar(CierreForm(_datos(request), request.FILES))
    resumen = registro.cerrar(
        request.user,
        datos["contenido"],
        nombre_archivo=datos.get("nombre_archivo"),
        unidad=datos["unidad"],
        solo_areas_con_datos=datos["solo_areas_con_datos"],
    )
    return _json({"ok": True, "registro": _registro_dict(registro), "resumen": resumen})


@login_required
@permission_required("desechos.registro_diario", raise_exception=True)
@require_GET
@api_json
def historial(request):
    filtros = _validar(HistorialFiltroForm(request.GET))
    qs = Registro.objects.filter(estado=Registro.CERRADO).select_related("creado_por", "cerrado_por")

    desde, hasta = filtros.get("desde"), filtros.get("hasta")
    if desde or hasta:
        inicio, fin = rango_local(desde or hasta, hasta or desde)
        qs = qs.filter(cerrado_at__gte=inicio, cerrado_at__lt=fin)
    if filtros.get("cerrado_por"):
        qs = qs.filter(cerrado_por_id=filtros["cerrado_por"])
    texto = (filtros.get("encargado") or "").strip()
    if texto:
        qs = qs.filter(
            Q(cerrado_por__username__icontains=texto)
            | Q(cerrado_por__first_name__icontains=texto)
            | Q(cerrado_por__last_name__icontains=texto)
        )

    return _json(_pagina(qs.order_by("-cerrado_at", "-id"), filtros, _registro_dict))


@login_required
@permission_required("desechos.registro_diario", raise_exception=True)
@require_GET
@api_json
def registro_pdf(request, pk):
    registro = Registro.objects.filter(pk=pk).first()
    if registro is None or not registro.pdf:
        raise NoEncontrado("El registro no tiene PDF")
    try:
        archivo = almacen.abrir_pdf(registro.pdf)
    except FileNotFoundError:
        logger.error("PDF %s del registro %s no está en el almacenamiento", registro.pdf, registro.pk)
        raise NoEncontrado("El PDF del registro no está disponible")
    return FileResponse(archivo, content_type="application/pdf", filename=os.path.basename(registro.pdf))


# ============================================================
# REPORTES
# ============================================================
def _responder_resumen(request, resumen, nombre):
    if request.GET.get("formato") == "csv":
        resp = HttpResponse(resumen_a_csv(resumen), content_type="text/csv")
        resp["Content-Disposition"] = f'attachment; filename="{nombre}.csv"'
        return resp
    return _json(resumen)


@login_required
@permiso_alguno("desechos.registro_diario", "desechos.estadisticas")
@require_GET
@api_json
def reporte_por_registro(request, pk):
    datos = _validar(ReporteForm(request.GET))
    resumen = resumen_por_registro(pk, unidad=datos["unidad"], solo_areas_con_datos=datos["solo_areas_con_datos"])
    return _responder_resumen(request, resumen, f"desechos_registro_{pk}")


@login_required
@permiso_alguno("desechos.registro_diario", "desechos.estadisticas")
@require_GET
@api_json
def reporte_diario(request):
    datos = _validar(ReporteForm(request.GET))
    resumen = resumen_por_rango(
        datos["desde"], datos["hasta"],
        unidad=datos["unidad"], solo_areas_con_datos=datos["solo_areas_con_datos"],
    )
    nombre = f"desechos_{datos['desde'].strftime('%Y%m%d')}_{datos['hasta'].strftime('%Y%m%d')}"
    return _responder_resumen(request, resumen, nombre)


@login_required
@permission_required("desechos.estadisticas", raise_exception=True)
@require_GET
@api_json
def indicadores(request):
    return _json(kpis())
