from sitepub.cli import main

main()
