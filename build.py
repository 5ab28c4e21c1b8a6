#!/usr/bin/env python3
from solosite.cli import main

if __name__ == "__main__":
    main()
