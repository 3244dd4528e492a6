from ciphergate.main import main

main()
