from django.db import migrations, models


class Migration(migrations.Migration):

    dependencies = [
        ('delivery', '0001_initial'),
    ]

    operations = [
        migrations.AddField(
            model_name='driver',
            name='is_blocked',
            field=models.BooleanField(default=False, help_text='Blocked drivers cannot go online or receive orders'),
        ),
    ]
