from sitemirror.cli import main

main()
