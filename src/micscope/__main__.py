from micscope.app import main

main()
