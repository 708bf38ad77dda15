from galerainit.cli import main

main()
