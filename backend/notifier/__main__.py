# backend/notifier/__main__.py
from .bot import main

if __name__ == "__main__":
    main()
