# -- Package Entry Point -- #

'''
Allows `python -m expectationRegistration`.

Sean Bowman [10/19/2026]
'''

from expectationRegistration.runner import main

raise SystemExit(main())
