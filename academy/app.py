# module academy.app
from academy.app_setup.factory import create_app

# App globale
app = create_app()
