import django.db.models.deletion
import django.db.models.functions.text
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('academics', '0001_initial'),
    ]

    operations = [
        migrations.CreateModel(
            name='Student',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('name', models.CharField(max_length=150)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('subject', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='students', to='academics.subject')),
            ],
            options={
                'ordering': ['name'],
                'constraints': [
                    models.UniqueConstraint(
                        django.db.models.functions.text.Lower('name'), models.F('subject'),
                        name='unique_student_name_per_subject',
                        violation_error_message='A student with this name already exists in this subject.',
                    ),
                ],
            },
        ),
    ]
