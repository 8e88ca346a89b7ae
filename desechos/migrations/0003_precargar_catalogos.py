# desechos/migrations/0003_precargar_catalogos.py
from django.db import migrations

# Mismos nombres que las columnas y filas del formato impreso
TIPOS_DEFAULT = [
    'Desechos Infecciosos',
    'Desechos Patológicos',
    'Desechos Punzocortantes',
    'Desechos Especiales',
    'Desecho Común',
]

AREAS_DEFAULT = [
    'Medicina, Cirugía y Trauma Hombres y Mujeres, Rayos X',
    'Pediatría y Maternidad',
    'Consulta Externa',
    'Emergencia, costurería, psicología, despacho de farmacia, laboratorio, fisioterapia, trabajo social, transporte',
    'Intensivo',
    'Quirófano',
    'Sala de Partos',
    'Central de Equipo',
    'Cocina',
    'Lavandería',
    'Mantenimiento',
    'Intendencia',
    'Administración',
    'Área Verde',
    'Bodegas',
    'Gerencia',
]


def precargar_catalogos(apps, schema_editor):
    """Crea los tipos de desecho y áreas del formato oficial si no existen."""
    TipoDesecho = apps.get_model('desechos', 'TipoDesecho')
    Area = apps.get_model('desechos', 'Area')

    for nombre in TIPOS_DEFAULT:
        TipoDesecho.objects.get_or_create(nombre=nombre)
    for nombre in AREAS_DEFAULT:
        Area.objects.get_or_create(nombre=nombre)


class Migration(migrations.Migration):

    dependencies = [
        ('desechos', '0002_crear_grupos_default'),
    ]

    operations = [
        migrations.RunPython(precargar_catalogos, migrations.RunPython.noop),
    ]
