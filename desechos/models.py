# ============================================================
#  IMPORTACIONES
# ============================================================
import logging
from decimal import Decimal, InvalidOperation

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import models, transaction, IntegrityError
from django.db.models import Sum, Q, Value, DecimalField
from django.db.models.functions import Coalesce
from django.utils import timezone

from . import almacen
from .codigos import generar_codigos, payload_etiqueta
from .exceptions import NoEncontrado, Conflicto
from .unidades import LB, KG, peso3

logger = logging.getLogger(__name__)


def nombre_usuario(user) -> str:
    if user is None:
        return ""
    return (user.get_full_name() or user.get_username() or "").strip()


def _entero_positivo(valor, campo):
    try:
        n = int(valor)
    except (TypeError, ValueError):
        raise ValidationError(f"{campo} inválido")
    if n < 1:
        raise ValidationError(f"{campo} debe ser al menos 1")
    return n


def _entero_opcional(valor, campo):
    if valor in (None, ""):
        return None
    try:
        return int(valor)
    except (TypeError, ValueError):
        raise ValidationError(f"{campo} inválido")


def validar_peso(valor) -> Decimal:
    """Peso en libras tal como llega de la balanza; se guarda con 3 decimales."""
    if valor is None or str(valor).strip() == "":
        raise ValidationError("Falta el peso")
    try:
        d = Decimal(str(valor).replace(",", ".").strip())
    except InvalidOperation:
        raise ValidationError("Peso inválido")
    maximo = Decimal(str(settings.DESECHOS_PESO_MAXIMO_LB))
    if not d.is_finite() or d < 0 or d > maximo:
        raise ValidationError(f"El peso debe estar entre 0 y {maximo} lb")
    return peso3(d)


# =========================
#  Catálogos (solo lectura para el registro)
# =========================
class Area(models.Model):
    nombre = models.CharField(max_length=200, unique=True)
    activo = models.BooleanField(default=True)

    class Meta:
        ordering = ["nombre"]

    def __str__(self):
        return self.nombre


class TipoDesecho(models.Model):
    nombre = models.CharField(max_length=120, unique=True)
    activo = models.BooleanField(default=True)

    class Meta:
        ordering = ["id"]
        verbose_name = "tipo de desecho"
        verbose_name_plural = "tipos de desecho"

    def __str__(self):
        return self.nombre


class Bolsa(models.Model):
    color = models.CharField(max_length=50)
    tamano = models.CharField(max_length=50, blank=True)
    tipo_desecho = models.ForeignKey(
        TipoDesecho,
        on_delete=models.PROTECT,
        related_name="bolsas",
        null=True,
        blank=True,
    )
    activo = models.BooleanField(default=True)

    class Meta:
        ordering = ["color", "tamano"]

    def __str__(self):
        return self.descripcion

    @property
    def descripcion(self) -> str:
        return f"{self.color} {self.tamano}".strip()


# =========================
#  Lotes y etiquetas QR
# =========================
class LoteQR(models.Model):
    area = models.ForeignKey(Area, on_delete=models.PROTECT, related_name="lotes")
    bolsa = models.ForeignKey(Bolsa, on_delete=models.PROTECT, related_name="lotes")
    cantidad = models.PositiveIntegerField()
    por_hoja = models.PositiveIntegerField(default=4)
    created_by = models.ForeignKey(settings.AUTH_USER_MODEL, null=True, blank=True, on_delete=models.SET_NULL)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-id"]
        verbose_name = "lote QR"
        verbose_name_plural = "lotes QR"
        permissions = [("codigos_qr", "Generar y leer códigos QR")]

    def __str__(self):
        return f"Lote #{self.id or '—'} · {self.area} · {self.bolsa} x {self.cantidad}"

    @classmethod
    def generar(cls, area_id, bolsa_id, tipo_desecho_id=None, por_hoja=4, cantidad=None, usuario=None):
        """
        Crea el lote y todas sus etiquetas ACTIVAS en una sola transacción.
        Devuelve ``(lote, etiquetas)`` con las etiquetas ordenadas por id.
        """
        por_hoja = _entero_positivo(por_hoja, "por_hoja")
        cantidad = por_hoja if cantidad in (None, "") else _entero_positivo(cantidad, "cantidad")

        area = Area.objects.filter(pk=area_id).first()
        bolsa = Bolsa.objects.select_related("tipo_desecho").filter(pk=bolsa_id).first()
        if not area or not bolsa:
            raise NoEncontrado("Área o Bolsa no existe")
        if not area.activo:
            raise ValidationError("El área está deshabilitada")
        if not bolsa.activo:
            raise ValidationError("La bolsa está deshabilitada")
        if not bolsa.tipo_desecho_id:
            raise ValidationError("La bolsa seleccionada no tiene un tipo de desecho asignado.")
        tipo_desecho_id = _entero_opcional(tipo_desecho_id, "tipoDesechoId")
        if tipo_desecho_id is not None and tipo_desecho_id != bolsa.tipo_desecho_id:
            raise ValidationError("La bolsa no corresponde al tipo de desecho seleccionado.")

        intentos = settings.DESECHOS_REINTENTOS_CODIGO
        for intento in range(1, intentos + 1):
            try:
                with transaction.atomic():
                    lote = cls.objects.create(
                        area=area, bolsa=bolsa, cantidad=cantidad,
                        por_hoja=por_hoja, created_by=usuario,
                    )
                    EtiquetaQR.objects.bulk_create([
                        EtiquetaQR(codigo=codigo, lote=lote, area=area, bolsa=bolsa)
                        for codigo in generar_codigos(cantidad)
                    ])
            except IntegrityError:
                logger.warning("Colisión de código QR al generar lote (intento %d/%d)", intento, intentos)
                continue

            etiquetas = list(lote.etiquetas.order_by("id"))
            logger.info("Lote %s generado: %d etiquetas para área %s / bolsa %s",
                        lote.pk, len(etiquetas), area.pk, bolsa.pk)
            return lote, etiquetas

        raise Conflicto("Conflicto de código QR (intenta otra vez)", motivo="codigo_duplicado")

    @property
    def etiquetas_usadas(self) -> int:
        return self.etiquetas.filter(estado=EtiquetaQR.USADA).count()

    @property
    def puede_eliminar(self) -> bool:
        return self.etiquetas_usadas == 0

    def delete(self, *args, **kwargs):
        lote_id = self.pk
        with transaction.atomic():
            estados = list(
                EtiquetaQR.objects.select_for_update()
                .filter(lote_id=self.pk)
                .values_list("estado", flat=True)
            )
            if EtiquetaQR.USADA in estados:
                raise ValidationError("No se puede eliminar: hay etiquetas usadas en el lote")
            resultado = super().delete(*args, **kwargs)
        logger.info("Lote %s eliminado junto con %d etiquetas", lote_id, len(estados))
        return resultado


class EtiquetaQR(models.Model):
    ACTIVA = "ACTIVA"; USADA = "USADA"; ANULADA = "ANULADA"
    ESTADOS = [(ACTIVA, "Activa"), (USADA, "Usada"), (ANULADA, "Anulada")]

    codigo = models.CharField(max_length=32, unique=True)
    lote = models.ForeignKey(LoteQR, on_delete=models.CASCADE, related_name="etiquetas")
    area = models.ForeignKey(Area, on_delete=models.PROTECT, related_name="+")
    bolsa = models.ForeignKey(Bolsa, on_delete=models.PROTECT, related_name="+")
    estado = models.CharField(max_length=10, choices=ESTADOS, default=ACTIVA)
    usado_en = models.DateTimeField(null=True, blank=True)
    usado_por = models.ForeignKey(
        settings.AUTH_USER_MODEL, null=True, blank=True, on_delete=models.SET_NULL, related_name="+"
    )

    class Meta:
        ordering = ["id"]
        verbose_name = "etiqueta QR"
        verbose_name_plural = "etiquetas QR"

    def __str__(self):
        return f"{self.codigo} ({self.estado})"

    @property
    def payload(self) -> str:
        return payload_etiqueta(self.codigo, self.area_id, self.bolsa_id)

    @classmethod
    def mensaje_no_activa(cls, estado):
        if estado == cls.USADA:
            return "La etiqueta ya fue usada"
        if estado == cls.ANULADA:
            return "La etiqueta está ANULADA"
        return "La etiqueta no está ACTIVA"

    def consumir(self, usuario=None, cuando=None):
        """
        ACTIVA → USADA con un UPDATE condicionado al estado. Si otra petición la
        consumió primero no se toca la fila y se lanza ``Conflicto``.
        """
        cuando = cuando or timezone.now()
        n = EtiquetaQR.objects.filter(pk=self.pk, estado=self.ACTIVA).update(
            estado=self.USADA, usado_en=cuando, usado_por=usuario,
        )
        if n == 0:
            actual = EtiquetaQR.objects.filter(pk=self.pk).values_list("estado", flat=True).first()
            if actual is None:
                raise NoEncontrado("Etiqueta no encontrada")
            logger.info("Consumo rechazado para %s: estado %s", self.codigo, actual)
            raise Conflicto(self.mensaje_no_activa(actual), motivo=actual)
        self.estado, self.usado_en, self.usado_por = self.USADA, cuando, usuario

    def liberar(self) -> bool:
        """USADA → ACTIVA; solo como reverso al eliminar su línea."""
        n = EtiquetaQR.objects.filter(pk=self.pk, estado=self.USADA).update(
            estado=self.ACTIVA, usado_en=None, usado_por=None,
        )
        if n:
            self.estado, self.usado_en, self.usado_por = self.ACTIVA, None, None
        return bool(n)


# =========================
#  Registro global y sus líneas
# =========================
class Registro(models.Model):
    ABIERTO = "ABIERTO"; CERRADO = "CERRADO"
    ESTADOS = [(ABIERTO, "Abierto"), (CERRADO, "Cerrado")]

    creado_por = models.ForeignKey(
        settings.AUTH_USER_MODEL, null=True, blank=True, on_delete=models.SET_NULL,
        related_name="registros_creados",
    )
    estado = models.CharField(max_length=10, choices=ESTADOS, default=ABIERTO)
    abierto_at = models.DateTimeField(default=timezone.now)
    cerrado_at = models.DateTimeField(null=True, blank=True)
    cerrado_por = models.ForeignKey(
        settings.AUTH_USER_MODEL, null=True, blank=True, on_delete=models.SET_NULL,
        related_name="registros_cerrados",
    )
    total_peso_lb = models.DecimalField(max_digits=12, decimal_places=3, default=0)
    pdf = models.CharField(max_length=255, blank=True)

    class Meta:
        ordering = ["-abierto_at"]
        constraints = [
            # Nunca dos registros ABIERTOS a la vez
            models.UniqueConstraint(
                fields=["estado"],
                condition=Q(estado="ABIERTO"),
                name="desechos_registro_unico_abierto",
            ),
        ]
        permissions = [
            ("registro_diario", "Acceso al registro diario"),
            ("estadisticas", "Visualizar estadísticas"),
        ]

    def __str__(self):
        return f"Registro #{self.id or '—'} · {self.estado} · {self.total_peso_lb} lb"

    @property
    def responsable(self) -> str:
        return nombre_usuario(self.creado_por)

    @classmethod
    def obtener_abierto(cls):
        return cls.objects.filter(estado=cls.ABIERTO).order_by("-abierto_at", "-id").first()

    @classmethod
    def obtener_o_crear_abierto(cls, usuario=None):
        """
        Devuelve el registro ABIERTO o lo crea. Si dos peticiones intentan crearlo
        a la vez, la restricción única rechaza la segunda y esta vuelve a consultar.
        """
        intentos = settings.DESECHOS_REINTENTOS_REGISTRO
        for _ in range(intentos):
            abierto = cls.obtener_abierto()
            if abierto is not None:
                return abierto
            try:
                with transaction.atomic():
                    nuevo = cls.objects.create(creado_por=usuario, estado=cls.ABIERTO)
            except IntegrityError:
                logger.info("Otro proceso abrió el registro primero; se vuelve a consultar")
                continue
            logger.info("Registro %s abierto por %s", nuevo.pk, nombre_usuario(usuario) or "—")
            return nuevo
        raise Conflicto("No se pudo obtener el registro abierto, intenta otra vez", motivo="carrera_registro")

    def recalcular_total(self) -> Decimal:
        total = self.lineas.aggregate(
            total=Coalesce(Sum("peso_lb"), Value(Decimal("0")),
                           output_field=DecimalField(max_digits=12, decimal_places=3))
        )["total"]
        Registro.objects.filter(pk=self.pk).update(total_peso_lb=total)
        self.total_peso_lb = total
        return total

    @classmethod
    def registrar_escaneo(cls, codigo, peso_lb, usuario=None, area_id=None, bolsa_id=None):
        """
        Consume la etiqueta ``codigo`` y la anota en el registro abierto.
        ``area_id`` / ``bolsa_id`` son los que venían dentro del QR; si llegan
        deben coincidir con la etiqueta.
        """
        codigo = str(codigo or "").strip()
        if not codigo:
            raise ValidationError("Falta el código/QR escaneado")
        peso = validar_peso(peso_lb)
        area_id = _entero_opcional(area_id, "areaId")
        bolsa_id = _entero_opcional(bolsa_id, "bolsaId")

        etiqueta = EtiquetaQR.objects.select_related("bolsa").filter(codigo=codigo).first()
        if etiqueta is None:
            raise NoEncontrado("Etiqueta no encontrada")
        if etiqueta.estado != EtiquetaQR.ACTIVA:
            raise Conflicto(EtiquetaQR.mensaje_no_activa(etiqueta.estado), motivo=etiqueta.estado)
        if area_id and area_id != etiqueta.area_id:
            raise ValidationError("El QR no coincide con el área esperada")
        if bolsa_id and bolsa_id != etiqueta.bolsa_id:
            raise ValidationError("El QR no coincide con la bolsa esperada")
        tipo_id = etiqueta.bolsa.tipo_desecho_id
        if not tipo_id:
            raise ValidationError("La bolsa de esta etiqueta no tiene tipo de desecho asignado")

        with transaction.atomic():
            registro = None
            for _ in range(settings.DESECHOS_REINTENTOS_REGISTRO):
                abierto = cls.obtener_o_crear_abierto(usuario)
                registro = cls.objects.select_for_update().get(pk=abierto.pk)
                if registro.estado == cls.ABIERTO:
                    break
                registro = None
            if registro is None:
                raise Conflicto("El registro ya está cerrado", motivo=cls.CERRADO)

            etiqueta.consumir(usuario)
            linea = RegistroLinea.objects.create(
                registro=registro,
                etiqueta=etiqueta,
                area_id=etiqueta.area_id,
                bolsa_id=etiqueta.bolsa_id,
                tipo_desecho_id=tipo_id,
                peso_lb=peso,
            )
            registro.recalcular_total()

        logger.info("Etiqueta %s registrada: %s lb en registro %s (total %s lb)",
                    codigo, peso, registro.pk, registro.total_peso_lb)
        linea.registro = registro
        return linea

    @classmethod
    def eliminar_linea(cls, linea_id):
        linea = RegistroLinea.objects.filter(pk=linea_id).first()
        if linea is None:
            raise NoEncontrado("Línea no encontrada")
        registro_id = linea.registro_id
        linea.delete()
        return cls.objects.get(pk=registro_id)

    def cerrar(self, usuario, contenido_pdf, nombre_archivo=None, unidad=LB, solo_areas_con_datos=False):
        """
        Cierra el registro, guarda el PDF entregado y devuelve el resumen
        área × tipo en la unidad pedida.
        """
        from .reportes import resumen_por_registro

        if unidad not in (LB, KG):
            raise ValidationError("Parámetro unidad inválido (lb | kg)")

        ref = None
        try:
            with transaction.atomic():
                registro = Registro.objects.select_for_update().filter(pk=self.pk).first()
                if registro is None:
                    raise NoEncontrado("Registro no existe")
                if registro.estado == self.CERRADO:
                    raise Conflicto("El registro ya está cerrado", motivo=self.CERRADO)
                if not registro.lineas.exists():
                    raise ValidationError("No puedes cerrar un registro vacío")
                if not contenido_pdf:
                    raise ValidationError("No se recibió el PDF (archivo o base64).")

                registro.recalcular_total()
                ahora = timezone.now()
                ref = almacen.guardar_pdf(registro.pk, contenido_pdf, nombre_archivo, ahora)
                n = Registro.objects.filter(pk=registro.pk, estado=self.ABIERTO).update(
                    estado=self.CERRADO, cerrado_at=ahora, cerrado_por=usuario, pdf=ref,
                )
                if n == 0:
                    raise Conflicto("El registro ya está cerrado", motivo=self.CERRADO)
        except Exception:
            if ref:
                almacen.borrar_pdf(ref)
            raise

        self.refresh_from_db()
        logger.info("Registro %s cerrado por %s: %s lb, PDF %s",
                    self.pk, nombre_usuario(usuario) or "—", self.total_peso_lb, self.pdf)
        return resumen_por_registro(self, unidad=unidad, solo_areas_con_datos=solo_areas_con_datos)


class RegistroLinea(models.Model):
    registro = models.ForeignKey(Registro, on_delete=models.CASCADE, related_name="lineas")
    etiqueta = models.OneToOneField(EtiquetaQR, on_delete=models.PROTECT, related_name="linea")
    area = models.ForeignKey(Area, on_delete=models.PROTECT, related_name="lineas")
    bolsa = models.ForeignKey(Bolsa, on_delete=models.PROTECT, related_name="lineas")
    tipo_desecho = models.ForeignKey(TipoDesecho, on_delete=models.PROTECT, related_name="lineas")
    peso_lb = models.DecimalField(max_digits=12, decimal_places=3)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-id"]
        verbose_name = "línea de registro"
        verbose_name_plural = "líneas de registro"

    def __str__(self):
        return f"{self.registro_id} · {self.etiqueta_id} · {self.peso_lb} lb"

    def delete(self, *args, **kwargs):
        # Reverso: la etiqueta vuelve a ACTIVA y el total se recalcula
        with transaction.atomic():
            registro = Registro.objects.select_for_update().get(pk=self.registro_id)
            if registro.estado == Registro.CERRADO:
                raise Conflicto("El registro ya está cerrado; sus líneas no se pueden eliminar",
                                motivo=Registro.CERRADO)
            self.etiqueta.liberar()
            resultado = super().delete(*args, **kwargs)
            registro.recalcular_total()
        logger.info("Línea de registro eliminada; etiqueta %s vuelve a ACTIVA, total %s lb",
                    self.etiqueta_id, registro.total_peso_lb)
        return resultado
