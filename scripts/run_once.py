from dotenv import load_dotenv

load_dotenv()

# Thin wrapper so the agent can be started without installing the console script.
from leave_agent.app.run import main


if __name__ == "__main__":
    raise SystemExit(main())
