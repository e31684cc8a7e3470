from relprep.cli.app import main

main()
