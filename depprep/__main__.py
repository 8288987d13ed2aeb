from depprep.cli import main

main()
