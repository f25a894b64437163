from qcd.cli import main

main()
