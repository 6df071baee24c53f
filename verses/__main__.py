from verses.cli import main

main()
