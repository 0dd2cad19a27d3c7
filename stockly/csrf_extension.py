from flask_wtf import CSRFProtect

# Shared CSRF extension so JSON blueprints can be exempted.
csrf = CSRFProtect()
