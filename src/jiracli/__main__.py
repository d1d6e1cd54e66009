#!/usr/bin/env python
# -*- coding: utf-8 -*-
"""Allow ``python -m jiracli``."""
import sys

from jiracli.cli import main

sys.exit(main())
