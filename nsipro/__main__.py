"""
Entry point when running: python -m nsipro.

This delegates to the ``nsipro`` command line.
"""

if __name__ == "__main__":
    from nsipro.cli.main import main

    main()
