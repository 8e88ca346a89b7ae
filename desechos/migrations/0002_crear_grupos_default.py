# desechos/migrations/0002_crear_grupos_default.py
from django.contrib.auth.management import create_permissions
from django.db import migrations

# Grupos por defecto y sus permisos (codenames de la app 'desechos')
GRUPOS_Y_PERMISOS = {
    'Administrador': [
        'view_area', 'add_area', 'change_area', 'delete_area',
        'view_bolsa', 'add_bolsa', 'change_bolsa', 'delete_bolsa',
        'view_tipodesecho', 'add_tipodesecho', 'change_tipodesecho', 'delete_tipodesecho',
        'view_loteqr', 'delete_loteqr',
        'view_etiquetaqr',
        'view_registro',
        'view_registrolinea', 'delete_registrolinea',
        'codigos_qr', 'registro_diario', 'estadisticas',
    ],
    'Recolector': [
        'view_area', 'view_bolsa', 'view_tipodesecho',
        'codigos_qr', 'registro_diario',
    ],
    'Estadístico': [
        'estadisticas',
    ],
}


def crear_grupos_default(apps, schema_editor):
    # Los permisos normalmente se crean en post_migrate; aquí hacen falta antes
    for app_config in apps.get_app_configs():
        app_config.models_module = True
        create_permissions(app_config, apps=apps, verbosity=0)
        app_config.models_module = None

    Group = apps.get_model('auth', 'Group')
    Permission = apps.get_model('auth', 'Permission')

    mapa_permisos = dict(
        Permission.objects.filter(content_type__app_label='desechos').values_list('codename', 'pk')
    )

    for nombre_grupo, lista_codenames in GRUPOS_Y_PERMISOS.items():
        grupo, _ = Group.objects.get_or_create(name=nombre_grupo)
        faltantes = [c for c in lista_codenames if c not in mapa_permisos]
        if faltantes:
            print(f"  ¡ADVERTENCIA! Permisos no encontrados para '{nombre_grupo}': {', '.join(faltantes)}")
        grupo.permissions.set([mapa_permisos[c] for c in lista_codenames if c in mapa_permisos])


def borrar_grupos_default(apps, schema_editor):
    Group = apps.get_model('auth', 'Group')
    Group.objects.filter(name__in=GRUPOS_Y_PERMISOS.keys()).delete()


class Migration(migrations.Migration):

    dependencies = [
        ('desechos', '0001_initial'),
        ('auth', '0012_alter_user_first_name_max_length'),
        ('contenttypes', '0002_remove_content_type_name'),
    ]

    operations = [
        migrations.RunPython(crear_grupos_default, borrar_grupos_default),
    ]
