"""
Story Manager -- application layer over the story record store.

Package layout:
    services/   Application services (access facade, store worker, event bus)
    config.py   Environment-driven runtime settings
    paths.py    User data directory and database location
    main.py     Entry point that wires the services together
"""
