from spectr_cli.cli import main

main()
