from scylla_migrate.cli.app import app

app(prog_name="scylladb-migrate")
