from app.tailorbook import create_app

app = create_app()
