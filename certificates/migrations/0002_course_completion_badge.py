from django.db import migrations


def create_completion_badge(apps, schema_editor):
    Badge = apps.get_model('certificates', 'Badge')
    Badge.objects.get_or_create(
        name='Course Completion',
        defaults={
            'badge_type': 'COURSE_COMPLETION',
            'description': 'Completed every lesson of a course',
        },
    )


class Migration(migrations.Migration):

    dependencies = [
        ('certificates', '0001_initial'),
    ]

    operations = [
        migrations.RunPython(create_completion_badge, migrations.RunPython.noop),
    ]
