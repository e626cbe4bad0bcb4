from ipguard.main import main

main()
