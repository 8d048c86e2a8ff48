from clipbuddy.main import main

main()
