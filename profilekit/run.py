import os
from dotenv import load_dotenv

# Load environment variables before the config module reads them
dotenv_path = os.path.join(os.path.dirname(os.path.abspath(__file__)), "..", ".env")
if os.path.exists(dotenv_path):
    load_dotenv(dotenv_path)
    print(f"Loaded .env file from {dotenv_path}")
else:
    print(f".env file not found at {dotenv_path}, attempting default load_dotenv().")
    load_dotenv()

from profilekit.app import create_app  # noqa: E402

app = create_app()

if __name__ == "__main__":
    app.logger.info(
        f"Starting profilekit API server via run.py on {app.config['HOST']}:{app.config['PORT']} (Debug: {app.config['DEBUG']})"
    )
    app.run(host=app.config["HOST"], port=app.config["PORT"], debug=app.config["DEBUG"])
