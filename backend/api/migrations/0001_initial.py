from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="Link",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("link_id", models.CharField(max_length=64, unique=True)),
                ("store_code", models.CharField(db_index=True, max_length=32)),
                ("is_active", models.BooleanField(default=True)),
                ("expires_at", models.DateTimeField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
            ],
            options={"db_table": "links"},
        ),
        migrations.CreateModel(
            name="Submission",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("store_code", models.CharField(db_index=True, max_length=32)),
                ("link_id", models.CharField(max_length=64)),
                ("department", models.CharField(max_length=100)),
                ("shift", models.CharField(max_length=50)),
                ("gender", models.CharField(max_length=20)),
                ("members", models.JSONField(default=list)),
                ("device_id", models.CharField(blank=True, max_length=100)),
                ("songs", models.JSONField(default=list)),
                ("song_name", models.CharField(blank=True, max_length=300)),
                ("youtube_link", models.URLField(blank=True, max_length=500)),
                ("fingerprint", models.CharField(blank=True, max_length=200)),
                ("metadata", models.JSONField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={"db_table": "submissions", "ordering": ["-created_at"]},
        ),
    ]
