import logging
import os

from dotenv import load_dotenv
from flask import Flask, jsonify, request
from flask_migrate import Migrate

from database import db

load_dotenv()

# Initialize Flask app
app = Flask(__name__)
app.config["SQLALCHEMY_DATABASE_URI"] = os.environ.get(
    "DATABASE_URL", "sqlite:///taskprofiles.db"
)
app.config["SECRET_KEY"] = os.environ.get("SECRET_KEY", "dev-secret-key")
# JSON API only; forms are validated from request bodies.
app.config["WTF_CSRF_ENABLED"] = False

logging.basicConfig(
    level=os.environ.get("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

db.init_app(app)

# Models import should be after initializing db
from models.user import User
from models.profile import Profile
from models.category import Category
from models.task import Task

from routes.users import users_bp
from routes.profiles import profiles_bp
from routes.categories import categories_bp
from routes.tasks import tasks_bp

# Create flask command lines to update the db based on the model
# Usage:
# Create a migration script in ./migrations/versions
# > flask db migrate -m "Update comments"
# Run the update
# > flask db upgrade
migrate = Migrate(app, db)
app.register_blueprint(users_bp)
app.register_blueprint(profiles_bp)
app.register_blueprint(categories_bp)
app.register_blueprint(tasks_bp)


@app.errorhandler(404)
def not_found(error):
    if request.path.startswith("/api"):
        return jsonify({"success": False, "error": "Route not found"}), 404
    return error


@app.errorhandler(405)
def method_not_allowed(error):
    if request.path.startswith("/api"):
        return jsonify({"success": False, "error": "Method not allowed"}), 405
    return error


@app.errorhandler(500)
def internal_error(error):
    db.session.rollback()
    logging.error("Unhandled error on %s", request.path, exc_info=True)
    return jsonify({"success": False, "error": "Internal server error"}), 500


@app.route("/api/health")
def health():
    return jsonify({"success": True, "data": {"status": "ok"}})


# Application Execution
# ------------------------------
if __name__ == "__main__":
    app.run(debug=True)
