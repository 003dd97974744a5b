"""Send one test notification through the configured channel."""
from dotenv import load_dotenv

load_dotenv()

from leave_agent.app.run import main


if __name__ == "__main__":
    raise SystemExit(main(["--test-notification"]))
