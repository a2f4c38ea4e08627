from taskpilot.main import main

main()
