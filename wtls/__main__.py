from wtls.cli import main

main()
