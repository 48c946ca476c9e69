from recite.interface.cli import main

main()
