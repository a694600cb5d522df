# wsgi.py
from dotenv import load_dotenv
load_dotenv()

from onenumber import create_app  # noqa: E402

application = create_app()
app = application

if __name__ == "__main__":
    app.run(debug=False, host='0.0.0.0', port=5000)
